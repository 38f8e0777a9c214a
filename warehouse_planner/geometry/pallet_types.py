"""
Pallet type definitions for warehouse floor capacity analysis

This module defines the three pallet families the planner understands and the
physical dimensions used for footprint and stacking calculations.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional


class PalletType(Enum):
    """
    Pallet families supported by the floor planner

    STANDARD: North American GMA pallet (48" x 40")
    EURO: EUR-pallet (1200 x 800 mm)
    CUSTOM: Floor-specific dimensions entered by the warehouse owner
    """
    STANDARD = "standard"
    EURO = "euro"
    CUSTOM = "custom"


# ============================================================================
# PALLET CONSTANTS
# ============================================================================

# Standard (GMA) pallet, 48" x 40"
STANDARD_PALLET_LENGTH_M = 1.2192
STANDARD_PALLET_WIDTH_M = 1.016

# Euro pallet, 1200 x 800 mm
EURO_PALLET_LENGTH_M = 1.2
EURO_PALLET_WIDTH_M = 0.8

# Default loaded pallet height (meters)
DEFAULT_PALLET_HEIGHT_M = 1.5

# Custom pallet defaults (centimeters, as entered in the planner)
DEFAULT_CUSTOM_LENGTH_CM = 100
DEFAULT_CUSTOM_WIDTH_CM = 100
DEFAULT_CUSTOM_HEIGHT_CM = 150

# Planner limits for custom pallets (centimeters)
CUSTOM_PALLET_LIMITS_CM = {
    'length': (80, 120),
    'width': (80, 120),
    'height': (10, 200),
}


def _non_negative(value: Optional[float]) -> float:
    if value is None:
        return 0.0
    value = float(value)
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


@dataclass(frozen=True)
class PalletDimensions:
    """
    Physical envelope of one loaded pallet

    Attributes:
        length_m: Length along the floor's length axis (meters)
        width_m: Width along the floor's width axis (meters)
        height_m: Loaded height including goods (meters)
    """
    length_m: float
    width_m: float
    height_m: float

    @property
    def footprint_m2(self) -> float:
        """Horizontal area occupied by the pallet (never negative)"""
        return _non_negative(self.length_m) * _non_negative(self.width_m)

    @classmethod
    def from_cm(cls, length_cm: float, width_cm: float, height_cm: float) -> 'PalletDimensions':
        return cls(
            length_m=_non_negative(length_cm) / 100.0,
            width_m=_non_negative(width_cm) / 100.0,
            height_m=_non_negative(height_cm) / 100.0,
        )

    def __str__(self) -> str:
        return f"{self.length_m:.3f} x {self.width_m:.3f} x {self.height_m:.2f} m"


def default_pallet_set(
    standard_height_m: float = DEFAULT_PALLET_HEIGHT_M,
    euro_height_m: float = DEFAULT_PALLET_HEIGHT_M,
    custom_length_cm: float = DEFAULT_CUSTOM_LENGTH_CM,
    custom_width_cm: float = DEFAULT_CUSTOM_WIDTH_CM,
    custom_height_cm: float = DEFAULT_CUSTOM_HEIGHT_CM,
) -> Dict[PalletType, PalletDimensions]:
    """
    Build the pallet dimension set for one floor

    Args:
        standard_height_m: Loaded height of standard pallets
        euro_height_m: Loaded height of euro pallets
        custom_length_cm: Custom pallet length (cm)
        custom_width_cm: Custom pallet width (cm)
        custom_height_cm: Custom pallet height (cm)

    Returns:
        Dict mapping every PalletType to its dimensions
    """
    return {
        PalletType.STANDARD: PalletDimensions(
            STANDARD_PALLET_LENGTH_M, STANDARD_PALLET_WIDTH_M, standard_height_m
        ),
        PalletType.EURO: PalletDimensions(
            EURO_PALLET_LENGTH_M, EURO_PALLET_WIDTH_M, euro_height_m
        ),
        PalletType.CUSTOM: PalletDimensions.from_cm(
            custom_length_cm, custom_width_cm, custom_height_cm
        ),
    }


def check_custom_pallet(length_cm: float, width_cm: float, height_cm: float,
                        limits: Optional[Dict[str, tuple]] = None) -> List[str]:
    """
    Compare custom pallet dimensions against the planner limits

    Returns:
        List of violation messages (empty when all dimensions are in range)
    """
    limits = limits or CUSTOM_PALLET_LIMITS_CM
    problems = []
    for name, value in (('length', length_cm), ('width', width_cm), ('height', height_cm)):
        low, high = limits[name]
        if value is None or not (low <= value <= high):
            problems.append(f"Custom pallet {name} {value} cm outside {low}-{high} cm")
    return problems
