import math

import pytest

from warehouse_planner.data_tables import DataTables
from warehouse_planner.pricing_engine import (
    PricingEngine,
    PricingError,
    PricingRequest,
    round_currency,
    select_volume_discount,
)
from warehouse_planner.rate_registry import BookingType, MembershipTier, VolumeDiscount, WarehousePricing


@pytest.fixture
def engine(rate_tables):
    return PricingEngine(rate_tables)


def pallet_request(count, **kwargs):
    return PricingRequest(BookingType.PALLET, pallet_count=count, **kwargs)


def area_request(sq_ft, **kwargs):
    return PricingRequest(BookingType.AREA_RENTAL, area_sq_ft=sq_ft, **kwargs)


def test_pallet_booking_with_volume_discount(engine):
    result = engine.calculate(pallet_request(60))
    assert result.base_amount == 1350.0
    assert result.volume_discount_percent == 10
    assert result.volume_discount == 135.0
    assert result.membership_discount == 0.0
    assert result.final_amount == 1215.0
    assert [line.item for line in result.breakdown] == ["Pallet In", "Storage (1 month)"]
    assert result.breakdown[1].unit_price == 17.5


def test_membership_applies_after_volume_discount(engine):
    result = engine.calculate(pallet_request(60, membership_tier=MembershipTier.GOLD))
    assert result.membership_discount_percent == 10
    assert result.membership_discount == 121.5
    assert result.total_discount == 256.5
    assert result.final_amount == 1093.5
    assert result.total_discount_percent == pytest.approx(19.0)


def test_existing_pallets_count_toward_volume_threshold(engine):
    result = engine.calculate(pallet_request(40, existing_pallet_count=20))
    assert result.base_amount == 900.0
    assert result.volume_discount_percent == 10
    assert result.final_amount == 810.0


def test_only_highest_threshold_applies(engine):
    result = engine.calculate(pallet_request(100, months=3))
    assert result.base_amount == 5750.0
    assert result.volume_discount_percent == 15
    assert result.final_amount == 4887.5
    assert result.breakdown[1].item == "Storage (3 months)"


def test_zero_quantity_prices_to_zero(engine):
    for request in (pallet_request(0), pallet_request(-4), area_request(0)):
        result = engine.calculate(request)
        assert result.final_amount == 0
        assert result.base_amount == 0
        assert result.breakdown == []


@pytest.mark.parametrize("quantity", [math.inf, -math.inf, math.nan])
def test_non_finite_quantity_prices_to_zero(engine, quantity):
    for request in (pallet_request(quantity), area_request(quantity)):
        result = engine.calculate(request)
        assert result.final_amount == 0
        assert result.breakdown == []
    assert engine.calculate_storage_renewal(quantity).final_amount == 0


def test_non_finite_existing_pallets_are_ignored(engine):
    assert engine.total_price(pallet_request(10, existing_pallet_count=math.inf)) == 225.0


@pytest.mark.parametrize("months", [0, -2, None, math.inf, math.nan])
def test_invalid_months_default_to_one(engine, months):
    assert engine.total_price(pallet_request(10, months=months)) == engine.total_price(pallet_request(10))


@pytest.mark.parametrize("threshold", [50, 100, 250])
def test_crossing_threshold_never_raises_unit_price(engine, threshold):
    below = engine.total_price(pallet_request(threshold - 1)) / (threshold - 1)
    at = engine.total_price(pallet_request(threshold)) / threshold
    assert at <= below


def test_zero_percent_tier_reproduces_volume_adjusted_amount(engine):
    plain = engine.calculate(pallet_request(120))
    bronze = engine.calculate(pallet_request(120, membership_tier="bronze"))
    assert bronze.final_amount == plain.volume_adjusted_amount
    assert bronze.membership_discount == 0


def test_unknown_tier_string_is_ignored(engine):
    request = pallet_request(10, membership_tier="diamond")
    assert request.membership_tier is None
    assert engine.total_price(request) == 225.0


def test_area_rental_monthly_price(engine):
    result = engine.calculate(area_request(40000))
    assert result.base_amount == 66666.67
    assert result.volume_discount == 0
    assert result.breakdown[0].item == "Area Rental (1 month)"


def test_area_rental_gets_membership_only(engine):
    result = engine.calculate(area_request(60000, membership_tier=MembershipTier.PLATINUM))
    assert result.base_amount == 100000.0
    assert result.volume_discount == 0
    assert result.membership_discount == 15000.0
    assert result.final_amount == 85000.0


def test_area_rental_below_minimum_raises(engine):
    with pytest.raises(PricingError, match="Minimum area rental"):
        engine.calculate(area_request(39999))


def test_wrong_booking_type_raises(engine):
    with pytest.raises(PricingError):
        engine.calculate_pallet_pricing(area_request(40000))
    with pytest.raises(PricingError):
        engine.calculate_area_rental_pricing(pallet_request(10))


def test_warehouse_pricing_override_for_pallets(engine):
    override = WarehousePricing(base_price=20, unit="per_pallet_per_month", volume_discounts={"10": 5})
    result = engine.calculate(pallet_request(10), override)
    assert [line.item for line in result.breakdown] == ["Storage (1 month)"]
    assert result.base_amount == 200.0
    assert result.volume_discount_percent == 5
    assert result.final_amount == 190.0


def test_warehouse_pricing_override_for_area(engine):
    yearly = WarehousePricing(base_price=24, unit="per_sqft_per_year")
    assert engine.calculate(area_request(40000), yearly).base_amount == 80000.0

    monthly = WarehousePricing(base_price=1.5, unit="per_sqft_per_month", min_quantity=1000)
    assert engine.calculate(area_request(2000, months=2), monthly).base_amount == 6000.0


def test_storage_renewal(engine):
    result = engine.calculate_storage_renewal(10, MembershipTier.SILVER)
    assert result.base_amount == 175.0
    assert result.volume_discount == 0
    assert result.membership_discount == 8.75
    assert result.final_amount == 166.25
    assert result.breakdown[0].item.startswith("Monthly Storage")


def test_select_volume_discount():
    discounts = [VolumeDiscount(50, 10), VolumeDiscount(250, 20), VolumeDiscount(100, 15)]
    assert select_volume_discount(49, discounts) is None
    assert select_volume_discount(100, discounts).discount_percent == 15
    assert select_volume_discount(1000, discounts).discount_percent == 20


def test_round_currency_half_up():
    assert round_currency(0.125) == 0.13
    assert round_currency(2.675) == 2.68
    assert round_currency(1.004) == 1.0


def test_engine_records_price_items(rate_tables):
    store = DataTables()
    project = store.create_project({"name": "pricing"})
    engine = PricingEngine(rate_tables, store, project.project_id)
    result = engine.calculate(pallet_request(60, membership_tier="silver"))

    items = store.fetch_dataframe("price_items")
    assert list(items["description"]) == [
        "Pallet In", "Storage (1 month)", "Volume Discount (10%)", "Membership Discount (5%)",
    ]
    assert items["total"].sum() == pytest.approx(result.final_amount)
    assert not store.fetch_dataframe("unit_rates").empty
