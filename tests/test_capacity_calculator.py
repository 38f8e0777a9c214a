import pytest

from warehouse_planner.geometry import (
    FloorCapacityCalculator,
    FloorZone,
    PalletDimensions,
    PalletType,
    calculate_capacity,
    check_custom_pallet,
    compute_footprint_positions,
    compute_stack_count,
    compute_storage_area,
    compute_usable_rectangle,
    default_pallet_set,
)
from warehouse_planner.geometry.capacity_calculator import (
    AREA_SOURCE_STORAGE_ZONES,
    AREA_SOURCE_USABLE,
    AREA_SOURCE_USABLE_MINUS_ZONES,
    STACK_SOURCE_COMPUTED,
    STACK_SOURCE_OVERRIDE,
)


def test_reference_floor_standard_pallets():
    capacity = calculate_capacity(50, 30, 10)
    assert capacity.usable_length_m == pytest.approx(49.0)
    assert capacity.usable_width_m == pytest.approx(29.0)
    assert capacity.usable_area_m2 == pytest.approx(1421.0)
    assert capacity.storage_area_source == AREA_SOURCE_USABLE

    standard = capacity.by_type[PalletType.STANDARD]
    assert standard.footprint_positions == 1147
    assert standard.stack_count == 6
    assert standard.stack_source == STACK_SOURCE_COMPUTED
    assert standard.max_pallets == 6882


def test_reference_floor_other_pallet_types():
    capacity = calculate_capacity(50, 30, 10)
    assert capacity.max_pallets(PalletType.EURO) == 1480 * 6
    assert capacity.max_pallets(PalletType.CUSTOM) == 1421 * 6


def test_usable_rectangle_subtracts_loading_and_dock_from_length():
    length, width = compute_usable_rectangle(
        50, 30, wall_clearance_m=0.5, safety_clearance_m=0.5,
        loading_zone_depth_m=4, dock_zone_depth_m=3,
    )
    assert length == pytest.approx(50 - 2 - 4 - 3)
    assert width == pytest.approx(28)


def test_usable_rectangle_clamps_at_zero():
    assert compute_usable_rectangle(1, 1, wall_clearance_m=2) == (0.0, 0.0)


def test_footprint_positions_never_negative():
    pallet = PalletDimensions(1.2, 0.8, 1.5)
    assert compute_footprint_positions(-10, pallet) == 0
    assert compute_footprint_positions(0, pallet) == 0
    assert compute_footprint_positions(100, PalletDimensions(0, 0.8, 1.5)) == 0


@pytest.mark.parametrize("area", [0.5, 1.0, 9.6, 10.0, 123.45, 1421.0])
def test_footprint_positions_is_floor_of_area_over_footprint(area):
    pallet = PalletDimensions(1.2, 0.8, 1.5)
    positions = compute_footprint_positions(area, pallet)
    assert positions * pallet.footprint_m2 <= area + 1e-9
    assert (positions + 1) * pallet.footprint_m2 > area


def test_exact_division_is_not_lost_to_float_error():
    # 0.96 m2 euro footprint divides 9.6 m2 exactly
    assert compute_footprint_positions(9.6, PalletDimensions(1.2, 0.8, 1.5)) == 10


def test_stack_count_monotone_in_ceiling_height():
    previous = 0
    for tenths in range(0, 200):
        stack, _ = compute_stack_count(tenths / 10, 0.9, 1.5)
        assert stack >= previous
        previous = stack


def test_stack_count_at_least_one_when_ceiling_too_low():
    assert compute_stack_count(0.5, 0.9, 1.5) == (1, STACK_SOURCE_COMPUTED)
    assert compute_stack_count(10, 0.9, 0) == (1, STACK_SOURCE_COMPUTED)


def test_stacking_override_always_wins():
    assert compute_stack_count(10, 0.9, 1.5, stacking_override=2) == (2, STACK_SOURCE_OVERRIDE)
    assert compute_stack_count(0, 0.9, 1.5, stacking_override=12) == (12, STACK_SOURCE_OVERRIDE)
    assert compute_stack_count(10, 0.9, 1.5, stacking_override=0) == (1, STACK_SOURCE_OVERRIDE)


@pytest.mark.parametrize("override", [float("nan"), float("inf"), float("-inf"), "lots"])
def test_unusable_stacking_override_falls_back_to_computed(override):
    assert compute_stack_count(10, 0.9, 1.5, stacking_override=override) == (6, STACK_SOURCE_COMPUTED)
    capacity = calculate_capacity(50, 30, 10, stacking_override=override)
    assert capacity.by_type[PalletType.STANDARD].max_pallets == 6882


def test_override_applies_to_every_pallet_type():
    capacity = calculate_capacity(50, 30, 10, stacking_override=3)
    for result in capacity.by_type.values():
        assert result.stack_count == 3
        assert result.max_pallets == result.footprint_positions * 3


def test_storage_zones_replace_usable_area():
    zones = [FloorZone("storage", 1, 1, 10, 10), FloorZone("Storage", 20, 1, 5, 4)]
    area, source = compute_storage_area(1421, zones)
    assert area == pytest.approx(120)
    assert source == AREA_SOURCE_STORAGE_ZONES


def test_oversized_storage_zones_never_reduce_capacity():
    baseline = calculate_capacity(50, 30, 10)
    oversized = calculate_capacity(50, 30, 10, zones=[FloorZone("storage", 0, 0, 60, 40)])
    assert oversized.storage_area_m2 == pytest.approx(baseline.usable_area_m2)
    for pallet_type in PalletType:
        assert oversized.max_pallets(pallet_type) >= baseline.max_pallets(pallet_type)


def test_non_storage_zones_are_subtracted():
    zones = [FloorZone("office", 0, 0, 10, 10), FloorZone("staging", 10, 0, 5, 4)]
    area, source = compute_storage_area(1421, zones)
    assert area == pytest.approx(1421 - 120)
    assert source == AREA_SOURCE_USABLE_MINUS_ZONES


def test_inactive_zones_are_ignored():
    area, source = compute_storage_area(1421, [FloorZone("storage", 0, 0, 5, 5, active=False)])
    assert area == pytest.approx(1421)
    assert source == AREA_SOURCE_USABLE


def test_negative_inputs_yield_zero_capacity():
    capacity = FloorCapacityCalculator(-50, 30, 10).calculate()
    assert capacity.usable_area_m2 == 0
    assert all(result.max_pallets == 0 for result in capacity.by_type.values())


def test_default_pallet_set_custom_dimensions_in_meters():
    pallets = default_pallet_set(custom_length_cm=110, custom_width_cm=90, custom_height_cm=120)
    custom = pallets[PalletType.CUSTOM]
    assert custom.length_m == pytest.approx(1.1)
    assert custom.width_m == pytest.approx(0.9)
    assert custom.height_m == pytest.approx(1.2)


def test_check_custom_pallet_limits():
    assert check_custom_pallet(100, 100, 150) == []
    problems = check_custom_pallet(130, 100, 5)
    assert len(problems) == 2
    assert any("length" in p for p in problems)
    assert any("height" in p for p in problems)
