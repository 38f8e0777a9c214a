import pytest

from warehouse_planner.geometry.pallet_types import PalletType
from warehouse_planner.pipeline import run_scenario
from warehouse_planner.pricing_engine import PricingRequest
from warehouse_planner.rate_registry import BookingType


def test_scenario_capacity_and_tables(scenario_inputs, rate_tables):
    result = run_scenario(inputs=scenario_inputs, rate_tables=rate_tables)
    assert result.capacity.max_pallets(PalletType.STANDARD) == 6882
    assert result.pricing is None
    assert result.capacity_check is None

    elements = result.table("elements")
    assert set(elements["element_type"]) == {"floor", "pallet_type"}

    quantities = result.table("quantities")
    max_rows = quantities[quantities["measure"] == "max_pallets"]
    assert sorted(max_rows["value"]) == [6882, 8526, 8880]

    projects = result.table("projects")
    assert list(projects["project_id"]) == [result.project_id]


def test_scenario_with_pallet_booking(scenario_inputs, rate_tables):
    booking = {"booking_type": "pallet", "pallet_count": 60, "membership_tier": "gold"}
    result = run_scenario(inputs=scenario_inputs, rate_tables=rate_tables, booking=booking)

    assert result.pricing.final_amount == 1093.5
    assert result.capacity_check.available

    items = result.table("price_items")
    assert items["total"].sum() == pytest.approx(1093.5)
    assert set(items["source_pass"]) == {"pricing"}


def test_scenario_area_rental_off_floor_three(scenario_inputs, rate_tables):
    booking = PricingRequest(BookingType.AREA_RENTAL, area_sq_ft=40000)
    result = run_scenario(inputs=scenario_inputs, rate_tables=rate_tables, booking=booking)

    assert result.pricing.base_amount == 66666.67
    assert not result.capacity_check.available
    warnings = [w["message"] for w in result.diagnostics["pricing"]["warnings"]]
    assert any("Floor 3" in message for message in warnings)


def test_scenario_area_rental_fits_on_floor_three(scenario_inputs, rate_tables):
    inputs = dict(scenario_inputs, length_m=200.0, width_m=100.0, floor_level=3)
    booking = {"booking_type": "area-rental", "area_sq_ft": 40000}
    result = run_scenario(inputs=inputs, rate_tables=rate_tables, booking=booking)
    assert result.capacity_check.available


def test_scenario_records_pricing_errors(scenario_inputs, rate_tables):
    booking = {"booking_type": "area-rental", "area_sq_ft": 500}
    result = run_scenario(inputs=scenario_inputs, rate_tables=rate_tables, booking=booking)

    assert result.pricing is None
    errors = result.diagnostics["pricing"]["errors"]
    assert errors and "Minimum area rental" in errors[0]["message"]

    diagnostics = result.table("diagnostics")
    assert "error" in set(diagnostics["level"])


def test_scenario_floor_warnings_reach_ledger(scenario_inputs, rate_tables):
    inputs = dict(scenario_inputs, height_m=0.5)
    result = run_scenario(inputs=inputs, rate_tables=rate_tables)
    diagnostics = result.table("diagnostics")
    assert (diagnostics["scope"] == "floor").any()
    assert result.diagnostics["floor"]["warnings"]


def test_scenario_with_zones(scenario_inputs, rate_tables):
    inputs = dict(scenario_inputs, zones=[
        {"zone_type": "storage", "x_m": 1, "y_m": 1, "width_m": 20, "height_m": 10},
    ])
    result = run_scenario(inputs=inputs, rate_tables=rate_tables)
    assert result.floor.storage_area_m2 == pytest.approx(200)
    assert (result.table("elements")["element_type"] == "zone").sum() == 1
