"""
Geometry package for warehouse floor capacity analysis

This package provides the floor-level calculations behind the planner.

Main Classes:
    - FloorCapacityCalculator: Pallet capacity per pallet type for one floor
    - FloorZone: Declared rectangular zones (storage, loading, dock...)
    - PalletPlacement: Pallet stacks placed by hand on the plan
    - PalletType / PalletDimensions: Pallet families and their envelopes
"""

from .pallet_types import PalletType, PalletDimensions, default_pallet_set, check_custom_pallet
from .floor_zones import FloorZone, PalletPlacement, STORAGE_ZONE_TYPE
from .capacity_calculator import (
    FloorCapacityCalculator,
    FloorCapacity,
    PalletCapacity,
    calculate_capacity,
    compute_usable_rectangle,
    compute_storage_area,
    compute_footprint_positions,
    compute_stack_count,
)

__all__ = [
    'PalletType',
    'PalletDimensions',
    'default_pallet_set',
    'check_custom_pallet',
    'FloorZone',
    'PalletPlacement',
    'STORAGE_ZONE_TYPE',
    'FloorCapacityCalculator',
    'FloorCapacity',
    'PalletCapacity',
    'calculate_capacity',
    'compute_usable_rectangle',
    'compute_storage_area',
    'compute_footprint_positions',
    'compute_stack_count',
]
