"""
Floor Capacity Calculator

Estimates how many pallets of each type fit on one warehouse floor.

The estimate is a single-pass area division, not a packing solver:
1. Shrink the floor by wall + safety clearance on every side, and by the
   loading and dock zone depths along the length.
2. Decide the storage area: the usable rectangle, the declared storage zones,
   or the usable rectangle minus declared non-storage zones.
3. Footprint positions = floor(storage area / pallet footprint). Pallets are
   axis aligned and never rotated or mixed.
4. Stack count = floor((ceiling - sprinkler clearance) / pallet height), unless
   a manual stacking override is given. Always at least 1.
5. Max pallets = positions x stack count.

Inputs are clamped rather than rejected: negative or non-finite numbers count
as zero, and an empty usable area simply yields zero capacity.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from .floor_zones import FloorZone
from .pallet_types import PalletDimensions, PalletType, default_pallet_set

logger = logging.getLogger(__name__)

# Guards floor() against values like 5.9999999999 that are really 6
_FLOOR_EPSILON = 1e-9

STACK_SOURCE_COMPUTED = 'computed'
STACK_SOURCE_OVERRIDE = 'override'

AREA_SOURCE_USABLE = 'usable_rectangle'
AREA_SOURCE_STORAGE_ZONES = 'storage_zones'
AREA_SOURCE_USABLE_MINUS_ZONES = 'usable_minus_zones'


def _non_negative(value: Optional[float]) -> float:
    if value is None:
        return 0.0
    value = float(value)
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


def _usable_override(value) -> Optional[int]:
    """Integer override, or None when it is not a finite number"""
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning("Stacking override %r is not a number, ignoring it", value)
        return None
    if not math.isfinite(number):
        logger.warning("Stacking override %r is not finite, ignoring it", value)
        return None
    return int(number)


def _floor_int(value: float) -> int:
    return int(math.floor(value + _FLOOR_EPSILON))


def compute_usable_rectangle(length_m: float, width_m: float, *,
                             wall_clearance_m: float = 0.0,
                             safety_clearance_m: float = 0.0,
                             loading_zone_depth_m: float = 0.0,
                             dock_zone_depth_m: float = 0.0) -> Tuple[float, float]:
    """
    Usable storage rectangle after clearances

    Returns:
        (usable_length_m, usable_width_m), each clamped at zero
    """
    edge = 2 * (_non_negative(wall_clearance_m) + _non_negative(safety_clearance_m))
    usable_width = _non_negative(width_m) - edge
    usable_length = (_non_negative(length_m) - edge
                     - _non_negative(loading_zone_depth_m)
                     - _non_negative(dock_zone_depth_m))
    return max(0.0, usable_length), max(0.0, usable_width)


def compute_storage_area(usable_area_m2: float,
                         zones: Optional[Iterable[FloorZone]] = None) -> Tuple[float, str]:
    """
    Storage area available for pallets

    Args:
        usable_area_m2: Area of the usable rectangle
        zones: Declared floor zones (inactive zones are ignored)

    Returns:
        Tuple of (storage_area_m2, source) where source names which rule applied
    """
    usable_area_m2 = _non_negative(usable_area_m2)
    active = [z for z in (zones or []) if z.active]
    if not active:
        return usable_area_m2, AREA_SOURCE_USABLE

    storage_zones = [z for z in active if z.is_storage]
    if storage_zones:
        declared = sum(z.area_m2 for z in storage_zones)
        # Overlapping or oversized declarations cannot exceed the usable floor
        return min(declared, usable_area_m2), AREA_SOURCE_STORAGE_ZONES

    blocked = sum(z.area_m2 for z in active)
    return max(0.0, usable_area_m2 - blocked), AREA_SOURCE_USABLE_MINUS_ZONES


def compute_footprint_positions(storage_area_m2: float, pallet: PalletDimensions) -> int:
    """floor(area / footprint); zero when either is zero"""
    footprint = pallet.footprint_m2
    area = _non_negative(storage_area_m2)
    if footprint <= 0 or area <= 0:
        return 0
    return max(0, _floor_int(area / footprint))


def compute_stack_count(ceiling_height_m: float, sprinkler_clearance_m: float,
                        pallet_height_m: float,
                        stacking_override: Optional[int] = None) -> Tuple[int, str]:
    """
    Number of pallets stacked per position

    Returns:
        Tuple of (stack_count, source), stack_count is always >= 1
    """
    override = _usable_override(stacking_override)
    if override is not None:
        return max(1, override), STACK_SOURCE_OVERRIDE

    pallet_height = _non_negative(pallet_height_m)
    if pallet_height <= 0:
        return 1, STACK_SOURCE_COMPUTED
    clear_height = _non_negative(ceiling_height_m) - _non_negative(sprinkler_clearance_m)
    return max(1, _floor_int(clear_height / pallet_height)), STACK_SOURCE_COMPUTED


@dataclass
class PalletCapacity:
    """Capacity of one pallet type on one floor"""
    pallet_type: PalletType
    pallet: PalletDimensions
    footprint_positions: int
    stack_count: int
    stack_source: str
    max_pallets: int

    def to_dict(self) -> dict:
        return {
            'pallet_type': self.pallet_type.value,
            'pallet_length_m': self.pallet.length_m,
            'pallet_width_m': self.pallet.width_m,
            'pallet_height_m': self.pallet.height_m,
            'footprint_m2': self.pallet.footprint_m2,
            'footprint_positions': self.footprint_positions,
            'stack_count': self.stack_count,
            'stack_source': self.stack_source,
            'max_pallets': self.max_pallets,
        }


@dataclass
class FloorCapacity:
    """Per-pallet-type capacity of a floor plus the geometry it came from"""
    usable_length_m: float
    usable_width_m: float
    usable_area_m2: float
    storage_area_m2: float
    storage_area_source: str
    by_type: Dict[PalletType, PalletCapacity] = field(default_factory=dict)

    def max_pallets(self, pallet_type: PalletType) -> int:
        entry = self.by_type.get(PalletType(pallet_type))
        return entry.max_pallets if entry else 0

    def to_dict(self) -> dict:
        return {
            'usable_length_m': self.usable_length_m,
            'usable_width_m': self.usable_width_m,
            'usable_area_m2': self.usable_area_m2,
            'storage_area_m2': self.storage_area_m2,
            'storage_area_source': self.storage_area_source,
            'by_type': {t.value: c.to_dict() for t, c in self.by_type.items()},
        }


class FloorCapacityCalculator:
    """
    Calculates pallet capacity for a single warehouse floor

    Holds the floor geometry and clearances; `calculate()` evaluates every
    pallet type in the supplied set.
    """

    # Clearance defaults (meters)
    DEFAULT_WALL_CLEARANCE = 0.5
    DEFAULT_SPRINKLER_CLEARANCE = 0.9  # below sprinkler heads
    DEFAULT_SAFETY_CLEARANCE = 0.0
    DEFAULT_LOADING_ZONE_DEPTH = 0.0
    DEFAULT_DOCK_ZONE_DEPTH = 0.0

    def __init__(self, length_m: float, width_m: float, height_m: float,
                 wall_clearance_m: float = DEFAULT_WALL_CLEARANCE,
                 sprinkler_clearance_m: float = DEFAULT_SPRINKLER_CLEARANCE,
                 safety_clearance_m: float = DEFAULT_SAFETY_CLEARANCE,
                 loading_zone_depth_m: float = DEFAULT_LOADING_ZONE_DEPTH,
                 dock_zone_depth_m: float = DEFAULT_DOCK_ZONE_DEPTH,
                 zones: Optional[Iterable[FloorZone]] = None,
                 stacking_override: Optional[int] = None):
        """
        Initialize capacity calculator

        Args:
            length_m: Floor length (meters)
            width_m: Floor width (meters)
            height_m: Clear ceiling height (meters)
            wall_clearance_m: Gap kept free along every wall
            sprinkler_clearance_m: Gap kept free below sprinkler heads
            safety_clearance_m: Extra perimeter gap on top of wall clearance
            loading_zone_depth_m: Loading zone depth taken off the length
            dock_zone_depth_m: Dock zone depth taken off the length
            zones: Declared floor zones, optional
            stacking_override: Manual stack count, takes precedence when set
        """
        self.length_m = _non_negative(length_m)
        self.width_m = _non_negative(width_m)
        self.height_m = _non_negative(height_m)
        self.wall_clearance_m = _non_negative(wall_clearance_m)
        self.sprinkler_clearance_m = _non_negative(sprinkler_clearance_m)
        self.safety_clearance_m = _non_negative(safety_clearance_m)
        self.loading_zone_depth_m = _non_negative(loading_zone_depth_m)
        self.dock_zone_depth_m = _non_negative(dock_zone_depth_m)
        self.zones = list(zones or [])
        self.stacking_override = stacking_override

    def calculate(self, pallets: Optional[Dict[PalletType, PalletDimensions]] = None) -> FloorCapacity:
        """
        Evaluate capacity for each pallet type

        Args:
            pallets: Pallet dimension set; defaults to default_pallet_set()

        Returns:
            FloorCapacity with one PalletCapacity per pallet type
        """
        pallets = pallets if pallets is not None else default_pallet_set()

        usable_length, usable_width = compute_usable_rectangle(
            self.length_m, self.width_m,
            wall_clearance_m=self.wall_clearance_m,
            safety_clearance_m=self.safety_clearance_m,
            loading_zone_depth_m=self.loading_zone_depth_m,
            dock_zone_depth_m=self.dock_zone_depth_m,
        )
        usable_area = usable_length * usable_width
        storage_area, source = compute_storage_area(usable_area, self.zones)

        if usable_area <= 0:
            logger.debug("Floor %.2fx%.2f m has no usable area after clearances",
                         self.length_m, self.width_m)

        by_type: Dict[PalletType, PalletCapacity] = {}
        for pallet_type, pallet in pallets.items():
            positions = compute_footprint_positions(storage_area, pallet)
            stack, stack_source = compute_stack_count(
                self.height_m, self.sprinkler_clearance_m, pallet.height_m,
                self.stacking_override,
            )
            by_type[pallet_type] = PalletCapacity(
                pallet_type=pallet_type,
                pallet=pallet,
                footprint_positions=positions,
                stack_count=stack,
                stack_source=stack_source,
                max_pallets=positions * stack,
            )

        return FloorCapacity(
            usable_length_m=usable_length,
            usable_width_m=usable_width,
            usable_area_m2=usable_area,
            storage_area_m2=storage_area,
            storage_area_source=source,
            by_type=by_type,
        )


def calculate_capacity(length_m: float, width_m: float, height_m: float,
                       pallets: Optional[Dict[PalletType, PalletDimensions]] = None,
                       **kwargs) -> FloorCapacity:
    """Convenience wrapper: FloorCapacityCalculator(...).calculate(pallets)"""
    return FloorCapacityCalculator(length_m, width_m, height_m, **kwargs).calculate(pallets)
