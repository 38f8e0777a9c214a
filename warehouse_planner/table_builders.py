"""
Helpers to populate the normalized data tables from floor capacity
calculations.
"""

from __future__ import annotations

from typing import Dict

from .data_tables import DataTables
from .floor import FloorPlan


def populate_floor_tables(store: DataTables, project_id: str, floor: FloorPlan) -> Dict[str, str]:
    """
    Insert floor geometry, zones and per-pallet-type capacity into the tables.

    Returns a dictionary mapping descriptive keys to element IDs.
    """
    element_ids: Dict[str, str] = {}

    floor_id = store.add_element(
        project_id,
        "floor",
        name=floor.name,
        floor_level=floor.floor_level,
        metadata={
            "length_m": floor.length_m,
            "width_m": floor.width_m,
            "height_m": floor.height_m,
            "wall_clearance_m": floor.wall_clearance_m,
            "sprinkler_clearance_m": floor.sprinkler_clearance_m,
            "safety_clearance_m": floor.safety_clearance_m,
            "stacking_override": floor.stacking_override,
        },
    )
    element_ids["floor"] = floor_id

    for measure, value, unit in (
        ("gross_area", floor.gross_area_m2, "M2"),
        ("usable_area", floor.usable_area_m2, "M2"),
        ("storage_area", floor.storage_area_m2, "M2"),
        ("clear_stacking_height", floor.clear_stacking_height_m, "M"),
    ):
        store.add_quantity(project_id, floor_id, measure, value, unit, source_pass="geometry")

    # Zones
    for index, zone in enumerate(floor.zones):
        zone_id = store.add_element(
            project_id,
            "zone",
            name=f"{zone.zone_type}_{index + 1}",
            floor_level=floor.floor_level,
            parent_element_id=floor_id,
            metadata=zone.to_dict(),
        )
        element_ids[f"zone:{index}"] = zone_id
        store.add_quantity(
            project_id,
            zone_id,
            "zone_area",
            zone.area_m2,
            "M2",
            source_pass="geometry",
            notes=None if zone.active else "inactive",
        )

    # Capacity per pallet type
    for pallet_type, result in floor.capacity.by_type.items():
        type_id = store.add_element(
            project_id,
            "pallet_type",
            name=pallet_type.value,
            floor_level=floor.floor_level,
            parent_element_id=floor_id,
            metadata={
                "length_m": result.pallet.length_m,
                "width_m": result.pallet.width_m,
                "height_m": result.pallet.height_m,
                "stack_source": result.stack_source,
            },
        )
        element_ids[f"pallet_type:{pallet_type.value}"] = type_id
        store.add_quantity(project_id, type_id, "footprint_positions", result.footprint_positions,
                           "EA", source_pass="capacity")
        store.add_quantity(project_id, type_id, "stack_count", result.stack_count,
                           "EA", source_pass="capacity")
        store.add_quantity(project_id, type_id, "max_pallets", result.max_pallets,
                           "EA", source_pass="capacity")
        store.add_quantity(project_id, type_id, "placed_pallets",
                           floor.placed_pallets_by_type.get(pallet_type, 0),
                           "EA", source_pass="plan")

    return element_ids
