import copy
import json

import pytest

from warehouse_planner.rate_registry import (
    RATE_TABLES_ENV,
    MembershipTier,
    RateRegistry,
    VolumeDiscount,
    WarehousePricing,
    load_rate_tables,
)


def test_packaged_rate_tables(rate_tables):
    registry = RateRegistry(rate_tables)
    assert registry.value("pallet_in") == 5.0
    assert registry.value("pallet_out") == 5.0
    assert registry.value("storage_per_pallet_month") == 17.5
    assert registry.value("area_rental_per_sq_ft_year") == 20.0
    assert registry.value("area_rental_min_sq_ft") == 40000
    assert registry.value("tax_rate") == 0.08
    assert registry.value("due_in_days") == 30
    assert [d.pallet_threshold for d in registry.volume_discounts] == [50, 100, 250]
    assert registry.membership_discounts[MembershipTier.PLATINUM] == 15


def test_missing_rate_fails_validation(rate_tables):
    broken = copy.deepcopy(rate_tables)
    del broken["pallet_services"]["storage_per_pallet_per_month"]
    with pytest.raises(ValueError, match="storage_per_pallet_month"):
        RateRegistry(broken)


def test_pallet_out_is_optional(rate_tables):
    trimmed = copy.deepcopy(rate_tables)
    del trimmed["pallet_services"]["pallet_out"]
    registry = RateRegistry(trimmed)
    assert registry.value("pallet_in") == 5.0
    assert "pallet_out" not in [rate.semantic_name for rate in registry.list_rates()]


def test_unknown_rate_raises_key_error(rate_tables):
    with pytest.raises(KeyError):
        RateRegistry(rate_tables).get("forklift_hourly")


def test_membership_discount_lookup(rate_tables):
    registry = RateRegistry(rate_tables)
    assert registry.membership_discount_percent(None) == 0.0
    assert registry.membership_discount_percent("gold") == 10
    assert registry.membership_discount_percent(MembershipTier.SILVER) == 5
    assert registry.membership_discount_percent("diamond") == 0.0


def test_volume_discounts_sorted_regardless_of_file_order(rate_tables):
    shuffled = copy.deepcopy(rate_tables)
    shuffled["volume_discounts"].reverse()
    assert RateRegistry(shuffled).volume_discounts[0] == VolumeDiscount(50, 10.0)


def test_load_rate_tables_from_environment(tmp_path, monkeypatch, rate_tables):
    custom = copy.deepcopy(rate_tables)
    custom["pallet_services"]["storage_per_pallet_per_month"] = 19.0
    path = tmp_path / "rates.json"
    path.write_text(json.dumps(custom), encoding="utf-8")

    monkeypatch.setenv(RATE_TABLES_ENV, str(path))
    loaded = load_rate_tables()
    assert loaded["pallet_services"]["storage_per_pallet_per_month"] == 19.0


def test_warehouse_pricing_from_record():
    pricing = WarehousePricing.from_record({
        "base_price": "24.00",
        "unit": "per_sqft_per_year",
        "min_quantity": None,
        "volume_discounts": {"100": 12, "20": 4},
    })
    assert pricing.base_price == 24.0
    assert pricing.min_quantity is None
    assert pricing.discount_table() == [VolumeDiscount(20, 4.0), VolumeDiscount(100, 12.0)]
