"""
Live capacity checks and reservations for storage zones and rental halls.

Storage zones track pallet slots; halls track rentable square footage. Area
rentals are offered on floor 3 only. Reservation helpers never mutate their
inputs, they return updated copies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Tuple

from .floor import FloorPlan
from .geometry.pallet_types import PalletType

logger = logging.getLogger(__name__)

AREA_RENTAL_FLOOR = 3
PALLET_ZONE_TYPES = ("pallet", "cold-storage", "hazmat")


class CapacityError(Exception):
    """A reservation cannot be satisfied"""


@dataclass
class StorageZone:
    zone_id: str
    zone_type: str = "pallet"
    total_slots: int = 0
    available_slots: int = 0

    @property
    def occupied_slots(self) -> int:
        return max(0, self.total_slots - self.available_slots)


@dataclass
class Hall:
    hall_id: str
    floor_number: int
    sq_ft: float
    available_sq_ft: float
    occupied_sq_ft: float = 0.0


@dataclass
class CapacityCheck:
    available: bool
    message: str
    available_slots: Optional[int] = None
    required_slots: Optional[int] = None
    available_sq_ft: Optional[float] = None
    required_sq_ft: Optional[float] = None


@dataclass
class WarehouseUtilization:
    total_slots: int
    occupied_slots: int
    available_slots: int
    utilization_percent: float
    total_sq_ft: float
    occupied_sq_ft: float
    available_sq_ft: float
    utilization_sq_ft_percent: float


def check_pallet_capacity(zones: Iterable[StorageZone], required: int,
                          zone_type: str = "pallet") -> CapacityCheck:
    available = sum(z.available_slots or 0 for z in zones if z.zone_type == zone_type)
    if available >= required:
        message = f"Capacity available: {available} slots free"
    else:
        message = f"Insufficient capacity: Need {required} slots, only {available} available"
    return CapacityCheck(available >= required, message,
                         available_slots=available, required_slots=required)


def check_area_rental_capacity(halls: Iterable[Hall], required_sq_ft: float,
                               floor_number: int = AREA_RENTAL_FLOOR) -> CapacityCheck:
    if floor_number != AREA_RENTAL_FLOOR:
        return CapacityCheck(False, f"Area rentals are only available on Floor {AREA_RENTAL_FLOOR}")

    available = sum(h.available_sq_ft for h in halls if h.floor_number == floor_number)
    if available >= required_sq_ft:
        message = f"Capacity available: {available:,.0f} sq ft free on Floor {floor_number}"
    else:
        message = (f"Insufficient capacity: Need {required_sq_ft:,.0f} sq ft, "
                   f"only {available:,.0f} available")
    return CapacityCheck(available >= required_sq_ft, message,
                         available_sq_ft=available, required_sq_ft=required_sq_ft)


def check_floor_capacity(floor: FloorPlan, pallets: int,
                         pallet_type=PalletType.STANDARD) -> CapacityCheck:
    """Check a pallet count against a floor's theoretical maximum less what is already placed"""
    pallet_type = PalletType(pallet_type)
    maximum = floor.max_pallets(pallet_type)
    free = max(0, maximum - floor.placed_pallets_by_type.get(pallet_type, 0))
    if free >= pallets:
        message = f"{floor.name}: room for {free} more {pallet_type.value} pallets"
    else:
        message = f"{floor.name}: need {pallets} {pallet_type.value} pallet positions, only {free} free"
    return CapacityCheck(free >= pallets, message, available_slots=free, required_slots=pallets)


def summarize_utilization(zones: Iterable[StorageZone], halls: Iterable[Hall]) -> WarehouseUtilization:
    zones = [z for z in zones if z.zone_type in PALLET_ZONE_TYPES]
    halls = list(halls)

    total_slots = sum(z.total_slots or 0 for z in zones)
    available_slots = sum(z.available_slots or 0 for z in zones)
    occupied_slots = total_slots - available_slots

    total_sq_ft = sum(h.sq_ft for h in halls)
    occupied_sq_ft = sum(h.occupied_sq_ft for h in halls)
    available_sq_ft = sum(h.available_sq_ft for h in halls)

    return WarehouseUtilization(
        total_slots=total_slots,
        occupied_slots=occupied_slots,
        available_slots=available_slots,
        utilization_percent=(occupied_slots / total_slots * 100) if total_slots > 0 else 0.0,
        total_sq_ft=total_sq_ft,
        occupied_sq_ft=occupied_sq_ft,
        available_sq_ft=available_sq_ft,
        utilization_sq_ft_percent=(occupied_sq_ft / total_sq_ft * 100) if total_sq_ft > 0 else 0.0,
    )


def reserve_pallet_slots(zones: Iterable[StorageZone], amount: int,
                         zone_type: str = "pallet") -> Tuple[StorageZone, List[StorageZone]]:
    """
    Reserve `amount` slots in the zone with the most free slots that can hold them

    Returns the updated zone and the full updated zone list.
    """
    zones = list(zones)
    candidates = [z for z in zones if z.zone_type == zone_type and (z.available_slots or 0) >= amount]
    if not candidates:
        raise CapacityError("No available zones with sufficient capacity")

    chosen = max(candidates, key=lambda z: z.available_slots)
    updated = replace(chosen, available_slots=chosen.available_slots - amount)
    logger.info("Reserved %d slots in zone %s (%d left)", amount, chosen.zone_id, updated.available_slots)
    return updated, [updated if z is chosen else z for z in zones]


def release_pallet_slots(zone: StorageZone, amount: int) -> StorageZone:
    return replace(zone, available_slots=min((zone.available_slots or 0) + amount, zone.total_slots or 0))


def reserve_hall_area(hall: Hall, amount_sq_ft: float) -> Hall:
    if hall.available_sq_ft < amount_sq_ft:
        raise CapacityError(f"Insufficient capacity in hall {hall.hall_id}")
    return replace(
        hall,
        available_sq_ft=hall.available_sq_ft - amount_sq_ft,
        occupied_sq_ft=hall.occupied_sq_ft + amount_sq_ft,
    )


def release_hall_area(hall: Hall, amount_sq_ft: float) -> Hall:
    return replace(
        hall,
        available_sq_ft=hall.available_sq_ft + amount_sq_ft,
        occupied_sq_ft=max(0.0, hall.occupied_sq_ft - amount_sq_ft),
    )
