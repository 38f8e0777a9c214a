"""
End-to-end scenario pipeline:

1. Create a project record from the inputs.
2. Build the floor model and its pallet capacity.
3. Populate normalized tables (elements, quantities).
4. Price the booking (if any) and append price items.
5. Check the booking against the floor and collect diagnostics.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .availability import CapacityCheck, Hall, check_area_rental_capacity, check_floor_capacity
from .data_tables import DataTables
from .floor import FloorPlan, create_floor_plan
from .geometry.capacity_calculator import FloorCapacity
from .pricing_engine import PricingEngine, PricingError, PricingRequest, PricingResult
from .rate_registry import BookingType, WarehousePricing
from .reporting import build_min_diagnostics
from .table_builders import populate_floor_tables

logger = logging.getLogger(__name__)

SQ_FT_PER_M2 = 10.7639104


@dataclass
class ScenarioResult:
    project_id: str
    store: DataTables
    floor: FloorPlan
    capacity: FloorCapacity
    pricing: Optional[PricingResult]
    capacity_check: Optional[CapacityCheck]
    diagnostics: Dict[str, Any]

    def table(self, name: str):
        return self.store.fetch_dataframe(name)


def _booking_request(booking: Union[PricingRequest, Dict[str, Any]]) -> PricingRequest:
    if isinstance(booking, PricingRequest):
        return booking
    fields = {k: v for k, v in booking.items() if k != "warehouse_pricing"}
    return PricingRequest(**fields)


def _warehouse_pricing(value) -> Optional[WarehousePricing]:
    if value is None or isinstance(value, WarehousePricing):
        return value
    return WarehousePricing.from_record(value)


def _check_booking(floor: FloorPlan, request: PricingRequest) -> CapacityCheck:
    if request.booking_type == BookingType.PALLET:
        return check_floor_capacity(floor, int(request.pallet_count or 0))
    rentable_sq_ft = floor.storage_area_m2 * SQ_FT_PER_M2
    hall = Hall(hall_id=floor.name, floor_number=floor.floor_level,
                sq_ft=rentable_sq_ft, available_sq_ft=rentable_sq_ft)
    return check_area_rental_capacity([hall], request.area_sq_ft or 0, floor_number=floor.floor_level)


def run_scenario(
    *,
    inputs: Dict[str, Any],
    rate_tables: Dict[str, Any],
    booking: Optional[Union[PricingRequest, Dict[str, Any]]] = None,
    warehouse_pricing: Optional[Union[WarehousePricing, Dict[str, Any]]] = None,
    db_path: Optional[str] = None,
) -> ScenarioResult:
    """
    Execute the full calculation pipeline and return a ScenarioResult.
    """
    store = DataTables(db_path=db_path)
    project_record = store.create_project(inputs)
    project_id = project_record.project_id

    floor_kwargs = {k: v for k, v in inputs.items() if k not in ("project_id", "length_m", "width_m", "height_m")}
    floor = create_floor_plan(inputs["length_m"], inputs["width_m"], inputs["height_m"], **floor_kwargs)
    populate_floor_tables(store, project_id, floor)

    for message in floor.warnings:
        store.add_diagnostic(project_id, scope="floor", level="warning", message=message)

    engine = PricingEngine(rate_tables, store, project_id)
    pricing = None
    capacity_check = None

    if booking is not None:
        request = _booking_request(booking)
        if warehouse_pricing is None and isinstance(booking, dict):
            warehouse_pricing = booking.get("warehouse_pricing")
        try:
            pricing = engine.calculate(request, _warehouse_pricing(warehouse_pricing))
        except PricingError as exc:
            logger.warning("Booking could not be priced: %s", exc)
            engine.diagnostics["errors"].append({"message": str(exc), "detail": {}})

        capacity_check = _check_booking(floor, request)
        if not capacity_check.available:
            engine.diagnostics["warnings"].append({"message": capacity_check.message, "detail": {}})

    for level in ("warnings", "errors"):
        for entry in engine.diagnostics[level]:
            store.add_diagnostic(project_id, scope="pricing", level=level.rstrip("s"),
                                 message=entry["message"], detail=entry.get("detail"))

    diagnostics = {
        "floor": build_min_diagnostics(floor),
        "pricing": engine.diagnostics,
    }

    return ScenarioResult(
        project_id=project_id,
        store=store,
        floor=floor,
        capacity=floor.capacity,
        pricing=pricing,
        capacity_check=capacity_check,
        diagnostics=diagnostics,
    )
