"""
Floor elements that affect pallet storage layout

Contains classes representing things drawn on a warehouse floor plan:
- FloorZone: Rectangular zones (storage, loading, dock, office, staging)
- PalletPlacement: Pallet stacks placed by hand in the planner
"""

import math
from typing import Tuple

from .pallet_types import PalletType


STORAGE_ZONE_TYPE = 'storage'


def _clean(value) -> float:
    if value is None:
        return 0.0
    value = float(value)
    return value if math.isfinite(value) else 0.0


class FloorZone:
    """
    Represents a declared rectangular zone on a warehouse floor

    Zones are positioned from the floor's origin corner (x along length, y along
    width). Only zones typed 'storage' hold pallets; every other zone type
    (loading, dock, office, staging...) removes floor area from storage.
    """

    def __init__(self, zone_type: str, x_m: float, y_m: float,
                 width_m: float, height_m: float,
                 rotation_deg: float = 0.0, active: bool = True):
        """
        Initialize a floor zone

        Args:
            zone_type: Zone classification, e.g. 'storage', 'loading', 'dock'
            x_m: Position along floor length (meters)
            y_m: Position along floor width (meters)
            width_m: Zone extent along floor length (meters)
            height_m: Zone extent along floor width (meters)
            rotation_deg: Drawing rotation; area is rotation independent
            active: Inactive zones are kept for history but ignored
        """
        self.zone_type = (zone_type or '').strip().lower()
        self.x_m = _clean(x_m)
        self.y_m = _clean(y_m)
        self.width_m = _clean(width_m)
        self.height_m = _clean(height_m)
        self.rotation_deg = _clean(rotation_deg)
        self.active = bool(active)

    @property
    def area_m2(self) -> float:
        return max(0.0, self.width_m) * max(0.0, self.height_m)

    @property
    def is_storage(self) -> bool:
        return self.zone_type == STORAGE_ZONE_TYPE

    def bounds(self) -> Tuple[float, float, float, float]:
        """Return (x_min, y_min, x_max, y_max) ignoring rotation"""
        return (self.x_m, self.y_m,
                self.x_m + max(0.0, self.width_m), self.y_m + max(0.0, self.height_m))

    def to_dict(self) -> dict:
        return {
            'zone_type': self.zone_type,
            'x_m': self.x_m,
            'y_m': self.y_m,
            'width_m': self.width_m,
            'height_m': self.height_m,
            'rotation_deg': self.rotation_deg,
            'active': self.active,
            'area_m2': self.area_m2,
        }

    def __repr__(self) -> str:
        return (f"FloorZone({self.zone_type!r}, x={self.x_m}, y={self.y_m}, "
                f"{self.width_m}x{self.height_m} m)")


class PalletPlacement:
    """
    A pallet stack placed on the floor plan

    The planner stores each placed stack with its position and how many pallets
    are stacked at that spot.
    """

    def __init__(self, pallet_type, x_m: float, y_m: float,
                 stack_count: int = 1, rotation_deg: float = 0.0):
        self.pallet_type = PalletType(pallet_type)
        self.x_m = _clean(x_m)
        self.y_m = _clean(y_m)
        self.stack_count = max(1, int(stack_count or 1))
        self.rotation_deg = _clean(rotation_deg)

    def __repr__(self) -> str:
        return (f"PalletPlacement({self.pallet_type.value}, x={self.x_m}, "
                f"y={self.y_m}, stack={self.stack_count})")
