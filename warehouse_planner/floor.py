"""
Parametric model of a single warehouse floor

Handles:
- Floor dimensions, clearances and aisle widths as stored by the planner
- Declared zones and hand-placed pallet stacks
- Pallet capacity for standard, euro and custom pallets
- Plan utilization (placed pallets vs. maximum capacity)

Inputs are sanitized instead of rejected: every clamped value is logged and
kept in `warnings` so the UI and the ledger can surface it.
"""

import logging
import math
from typing import Any, Dict, Iterable, List, Optional

from .geometry.capacity_calculator import FloorCapacity, FloorCapacityCalculator
from .geometry.floor_zones import FloorZone, PalletPlacement
from .geometry.pallet_types import (
    DEFAULT_CUSTOM_HEIGHT_CM,
    DEFAULT_CUSTOM_LENGTH_CM,
    DEFAULT_CUSTOM_WIDTH_CM,
    DEFAULT_PALLET_HEIGHT_M,
    PalletType,
    check_custom_pallet,
    default_pallet_set,
)

logger = logging.getLogger(__name__)

__all__ = [
    'FloorPlan',
    'create_floor_plan',
]


class FloorPlan:
    """
    Parametric model of one warehouse floor

    Key behaviour:
    - Capacity is computed for every pallet type on construction
    - Negative or non-finite inputs are treated as zero (with a warning)
    - Stacking override applies to all pallet types on the floor
    """

    # Aisle defaults from the planner (meters). Recorded with the floor; the
    # area-division estimate does not subtract them.
    DEFAULT_MAIN_AISLE = 3.5
    DEFAULT_SIDE_AISLE = 2.5
    DEFAULT_PEDESTRIAN_AISLE = 1.0

    def __init__(self, length_m: float, width_m: float, height_m: float,
                 name: str = 'Floor 1',
                 floor_level: int = 1,
                 wall_clearance_m: float = FloorCapacityCalculator.DEFAULT_WALL_CLEARANCE,
                 sprinkler_clearance_m: float = FloorCapacityCalculator.DEFAULT_SPRINKLER_CLEARANCE,
                 safety_clearance_m: float = FloorCapacityCalculator.DEFAULT_SAFETY_CLEARANCE,
                 main_aisle_m: float = DEFAULT_MAIN_AISLE,
                 side_aisle_m: float = DEFAULT_SIDE_AISLE,
                 pedestrian_aisle_m: float = DEFAULT_PEDESTRIAN_AISLE,
                 loading_zone_depth_m: float = FloorCapacityCalculator.DEFAULT_LOADING_ZONE_DEPTH,
                 dock_zone_depth_m: float = FloorCapacityCalculator.DEFAULT_DOCK_ZONE_DEPTH,
                 standard_pallet_height_m: float = DEFAULT_PALLET_HEIGHT_M,
                 euro_pallet_height_m: float = DEFAULT_PALLET_HEIGHT_M,
                 custom_pallet_length_cm: float = DEFAULT_CUSTOM_LENGTH_CM,
                 custom_pallet_width_cm: float = DEFAULT_CUSTOM_WIDTH_CM,
                 custom_pallet_height_cm: float = DEFAULT_CUSTOM_HEIGHT_CM,
                 stacking_override: Optional[int] = None,
                 zones: Optional[Iterable[FloorZone]] = None,
                 placements: Optional[Iterable[PalletPlacement]] = None):
        """
        Initialize a warehouse floor

        Args:
            length_m: Floor length (meters)
            width_m: Floor width (meters)
            height_m: Clear ceiling height (meters)
            name: Display name, e.g. 'Level 1 - Ground Floor'
            floor_level: Floor number within the building
            wall_clearance_m: Gap kept free along walls
            sprinkler_clearance_m: Gap kept free below sprinkler heads
            safety_clearance_m: Extra perimeter gap
            main_aisle_m / side_aisle_m / pedestrian_aisle_m: Aisle widths
            loading_zone_depth_m: Loading zone depth along the length
            dock_zone_depth_m: Dock zone depth along the length
            standard_pallet_height_m: Loaded height of standard pallets
            euro_pallet_height_m: Loaded height of euro pallets
            custom_pallet_length_cm / _width_cm / _height_cm: Custom pallet
            stacking_override: Manual stack count (None = derive from height)
            zones: Declared FloorZone list
            placements: Pallet stacks placed on the plan
        """
        self.warnings: List[str] = []

        self.name = name
        self.floor_level = int(floor_level)

        self.length_m = self._sanitize('length_m', length_m)
        self.width_m = self._sanitize('width_m', width_m)
        self.height_m = self._sanitize('height_m', height_m)
        self.wall_clearance_m = self._sanitize('wall_clearance_m', wall_clearance_m)
        self.sprinkler_clearance_m = self._sanitize('sprinkler_clearance_m', sprinkler_clearance_m)
        self.safety_clearance_m = self._sanitize('safety_clearance_m', safety_clearance_m)
        self.main_aisle_m = self._sanitize('main_aisle_m', main_aisle_m)
        self.side_aisle_m = self._sanitize('side_aisle_m', side_aisle_m)
        self.pedestrian_aisle_m = self._sanitize('pedestrian_aisle_m', pedestrian_aisle_m)
        self.loading_zone_depth_m = self._sanitize('loading_zone_depth_m', loading_zone_depth_m)
        self.dock_zone_depth_m = self._sanitize('dock_zone_depth_m', dock_zone_depth_m)
        self.standard_pallet_height_m = self._sanitize('standard_pallet_height_m', standard_pallet_height_m)
        self.euro_pallet_height_m = self._sanitize('euro_pallet_height_m', euro_pallet_height_m)
        self.custom_pallet_length_cm = self._sanitize('custom_pallet_length_cm', custom_pallet_length_cm)
        self.custom_pallet_width_cm = self._sanitize('custom_pallet_width_cm', custom_pallet_width_cm)
        self.custom_pallet_height_cm = self._sanitize('custom_pallet_height_cm', custom_pallet_height_cm)
        self.stacking_override = self._sanitize_override(stacking_override)

        self.zones: List[FloorZone] = list(zones or [])
        self.placements: List[PalletPlacement] = list(placements or [])

        self._validate_inputs()

        # Derived properties
        self._calculate_geometry()
        self._calculate_capacity()
        self._calculate_utilization()

    # ------------------------------------------------------------------ inputs
    def _warn(self, message: str) -> None:
        logger.warning("%s: %s", self.name, message)
        self.warnings.append(message)

    def _sanitize(self, field_name: str, value: Any) -> float:
        if value is None:
            self._warn(f"{field_name} missing, using 0")
            return 0.0
        try:
            number = float(value)
        except (TypeError, ValueError):
            self._warn(f"{field_name}={value!r} is not a number, using 0")
            return 0.0
        if not math.isfinite(number):
            self._warn(f"{field_name}={value!r} is not finite, using 0")
            return 0.0
        if number < 0:
            self._warn(f"{field_name}={number} is negative, using 0")
            return 0.0
        return number

    def _sanitize_override(self, value: Any) -> Optional[int]:
        if value is None:
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            self._warn(f"stacking_override={value!r} is not an integer, ignoring it")
            return None
        if not math.isfinite(number):
            self._warn(f"stacking_override={value!r} is not finite, ignoring it")
            return None
        override = int(number)
        if override < 1:
            self._warn(f"stacking_override={override} below 1, using 1")
            return 1
        return override

    def _validate_inputs(self):
        """Record soft design-constraint violations"""
        if self.height_m <= self.sprinkler_clearance_m:
            self._warn(
                f"Ceiling {self.height_m:.2f} m does not clear sprinkler clearance "
                f"{self.sprinkler_clearance_m:.2f} m; stacking falls back to 1"
            )

        for problem in check_custom_pallet(self.custom_pallet_length_cm,
                                           self.custom_pallet_width_cm,
                                           self.custom_pallet_height_cm):
            self._warn(problem)

        for zone in self.zones:
            x_min, y_min, x_max, y_max = zone.bounds()
            if x_max > self.length_m or y_max > self.width_m:
                self._warn(f"Zone {zone.zone_type!r} at ({zone.x_m}, {zone.y_m}) "
                           f"extends beyond the floor outline")

    # -------------------------------------------------------------- derived
    def _calculate_geometry(self):
        self.gross_area_m2 = self.length_m * self.width_m
        self.perimeter_m = 2 * (self.length_m + self.width_m)
        self.clear_stacking_height_m = max(0.0, self.height_m - self.sprinkler_clearance_m)

    def _calculate_capacity(self):
        self.pallets = default_pallet_set(
            standard_height_m=self.standard_pallet_height_m,
            euro_height_m=self.euro_pallet_height_m,
            custom_length_cm=self.custom_pallet_length_cm,
            custom_width_cm=self.custom_pallet_width_cm,
            custom_height_cm=self.custom_pallet_height_cm,
        )
        calculator = FloorCapacityCalculator(
            self.length_m, self.width_m, self.height_m,
            wall_clearance_m=self.wall_clearance_m,
            sprinkler_clearance_m=self.sprinkler_clearance_m,
            safety_clearance_m=self.safety_clearance_m,
            loading_zone_depth_m=self.loading_zone_depth_m,
            dock_zone_depth_m=self.dock_zone_depth_m,
            zones=self.zones,
            stacking_override=self.stacking_override,
        )
        self.capacity: FloorCapacity = calculator.calculate(self.pallets)

        self.usable_length_m = self.capacity.usable_length_m
        self.usable_width_m = self.capacity.usable_width_m
        self.usable_area_m2 = self.capacity.usable_area_m2
        self.storage_area_m2 = self.capacity.storage_area_m2
        self.max_pallets_by_type: Dict[PalletType, int] = {
            t: c.max_pallets for t, c in self.capacity.by_type.items()
        }

    def _calculate_utilization(self):
        self.placed_pallets_by_type: Dict[PalletType, int] = {t: 0 for t in PalletType}
        for placement in self.placements:
            self.placed_pallets_by_type[placement.pallet_type] += placement.stack_count

        self.plan_utilization_by_type: Dict[PalletType, float] = {}
        for pallet_type in PalletType:
            maximum = self.max_pallets_by_type.get(pallet_type, 0)
            placed = self.placed_pallets_by_type[pallet_type]
            self.plan_utilization_by_type[pallet_type] = (placed / maximum * 100) if maximum > 0 else 0.0
            if maximum and placed > maximum:
                self._warn(f"{placed} {pallet_type.value} pallets placed but the floor holds {maximum}")

    # --------------------------------------------------------------- access
    def max_pallets(self, pallet_type=PalletType.STANDARD) -> int:
        return self.capacity.max_pallets(PalletType(pallet_type))

    @property
    def storage_ratio(self) -> float:
        """Share of the gross floor area available to pallets"""
        return self.storage_area_m2 / self.gross_area_m2 if self.gross_area_m2 > 0 else 0.0

    def get_summary(self) -> Dict:
        """Return summary of floor characteristics"""
        return {
            'floor': {
                'name': self.name,
                'floor_level': self.floor_level,
                'length_m': self.length_m,
                'width_m': self.width_m,
                'height_m': self.height_m,
                'gross_area_m2': self.gross_area_m2,
                'perimeter_m': self.perimeter_m,
            },
            'clearances': {
                'wall_m': self.wall_clearance_m,
                'sprinkler_m': self.sprinkler_clearance_m,
                'safety_m': self.safety_clearance_m,
                'loading_zone_depth_m': self.loading_zone_depth_m,
                'dock_zone_depth_m': self.dock_zone_depth_m,
                'clear_stacking_height_m': self.clear_stacking_height_m,
            },
            'aisles': {
                'main_m': self.main_aisle_m,
                'side_m': self.side_aisle_m,
                'pedestrian_m': self.pedestrian_aisle_m,
            },
            'storage': {
                'usable_length_m': self.usable_length_m,
                'usable_width_m': self.usable_width_m,
                'usable_area_m2': self.usable_area_m2,
                'storage_area_m2': self.storage_area_m2,
                'storage_area_source': self.capacity.storage_area_source,
                'storage_ratio': round(self.storage_ratio, 4),
                'num_zones': len(self.zones),
            },
            'capacity': {t.value: c.to_dict() for t, c in self.capacity.by_type.items()},
            'plan': {
                'placed_pallets': {t.value: n for t, n in self.placed_pallets_by_type.items()},
                'utilization_pct': {t.value: round(u, 1) for t, u in self.plan_utilization_by_type.items()},
            },
            'warnings': list(self.warnings),
        }

    # -------------------------------------------------------------- records
    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'FloorPlan':
        """
        Build a floor from a planner database row

        Accepts the `warehouse_floors` column names with nested
        `warehouse_floor_zones` and `warehouse_floor_pallet_layouts` lists.
        Rows whose `status` is false are skipped.
        """
        zones = [
            FloorZone(
                zone_type=z.get('zone_type'),
                x_m=z.get('x_m', 0.0),
                y_m=z.get('y_m', 0.0),
                width_m=z.get('width_m', 0.0),
                height_m=z.get('height_m', 0.0),
                rotation_deg=z.get('rotation_deg', 0.0),
                active=z.get('status', True),
            )
            for z in record.get('warehouse_floor_zones') or []
        ]
        placements = [
            PalletPlacement(
                pallet_type=p.get('pallet_type', PalletType.STANDARD.value),
                x_m=p.get('position_x_m', 0.0),
                y_m=p.get('position_y_m', 0.0),
                stack_count=p.get('stack_count', 1),
                rotation_deg=p.get('rotation_deg', 0.0),
            )
            for p in record.get('warehouse_floor_pallet_layouts') or []
            if p.get('status', True)
        ]

        kwargs = {}
        for key in (
            'wall_clearance_m', 'sprinkler_clearance_m', 'safety_clearance_m',
            'main_aisle_m', 'side_aisle_m', 'pedestrian_aisle_m',
            'loading_zone_depth_m', 'dock_zone_depth_m',
            'standard_pallet_height_m', 'euro_pallet_height_m',
            'custom_pallet_length_cm', 'custom_pallet_width_cm', 'custom_pallet_height_cm',
        ):
            if record.get(key) is not None:
                kwargs[key] = record[key]

        return cls(
            length_m=record.get('length_m'),
            width_m=record.get('width_m'),
            height_m=record.get('height_m'),
            name=record.get('name') or 'Floor 1',
            floor_level=record.get('floor_level') or 1,
            stacking_override=record.get('stacking_override'),
            zones=zones,
            placements=placements,
            **kwargs,
        )

    def __repr__(self) -> str:
        return (f"FloorPlan({self.name!r}, {self.length_m}x{self.width_m}x{self.height_m} m, "
                f"{self.max_pallets(PalletType.STANDARD)} standard pallets)")


def create_floor_plan(length_m: float, width_m: float, height_m: float, **kwargs) -> FloorPlan:
    """
    Factory for FloorPlan that accepts zone/placement dicts as well as objects

    Args:
        length_m / width_m / height_m: Floor dimensions (meters)
        zones: FloorZone objects or dicts with FloorZone keyword arguments
        placements: PalletPlacement objects or dicts
        **kwargs: Remaining FloorPlan keyword arguments
    """
    zones = [z if isinstance(z, FloorZone) else FloorZone(**z) for z in kwargs.pop('zones', None) or []]
    placements = [
        p if isinstance(p, PalletPlacement) else PalletPlacement(**p)
        for p in kwargs.pop('placements', None) or []
    ]
    return FloorPlan(length_m, width_m, height_m, zones=zones, placements=placements, **kwargs)
