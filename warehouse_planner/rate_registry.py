"""
Rate Registry - Abstraction Layer for Pricing Rate Tables

Provides validated, typed access to storage and rental rates while hiding the
rate table structure. Pricing code asks for WHAT it needs (semantic names), not
WHERE it lives in the JSON.
"""

import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

RATE_TABLES_ENV = "WAREHOUSE_RATE_TABLES"
DEFAULT_RATE_TABLES_PATH = Path(__file__).resolve().parent / "data" / "rate_tables.json"


class BookingType(Enum):
    """What a customer books"""
    PALLET = "pallet"
    AREA_RENTAL = "area-rental"


class MembershipTier(Enum):
    """Customer membership classification"""
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class RateUnit(Enum):
    """Units rates are quoted in"""
    PER_PALLET = "per pallet"
    PER_PALLET_MONTH = "per pallet per month"
    PER_SQ_FT_YEAR = "per sq ft per year"
    SQ_FT = "sq ft"
    FACTOR = "factor"
    DAYS = "days"


@dataclass
class UnitRate:
    """
    A single rate with metadata

    Attributes:
        semantic_name: What this rate is (e.g., 'storage_per_pallet_month')
        value: Rate value
        unit: Unit of measure
        description: Human-readable description
        source: Where in the rate tables this comes from (for debugging)
    """
    semantic_name: str
    value: float
    unit: RateUnit
    description: str
    source: str

    def __str__(self) -> str:
        return f"{self.description}: {self.value:,.2f} {self.unit.value}"


@dataclass(frozen=True)
class VolumeDiscount:
    """Percentage off once the cumulative pallet count reaches the threshold"""
    pallet_threshold: int
    discount_percent: float


@dataclass
class WarehousePricing:
    """
    Warehouse-specific price override

    Attributes:
        base_price: Price per unit in `unit`
        unit: e.g. 'per_pallet_per_month', 'per_sqft_per_year'
        min_quantity: Minimum area for area rentals (sq ft)
        volume_discounts: Mapping of pallet threshold -> discount percent
    """
    base_price: float
    unit: str
    min_quantity: Optional[float] = None
    volume_discounts: Optional[Dict[Union[str, int], float]] = None

    def discount_table(self) -> Optional[List[VolumeDiscount]]:
        if not self.volume_discounts:
            return None
        return sorted(
            (VolumeDiscount(int(threshold), float(percent))
             for threshold, percent in self.volume_discounts.items()),
            key=lambda d: d.pallet_threshold,
        )

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'WarehousePricing':
        return cls(
            base_price=float(record['base_price']),
            unit=str(record.get('unit') or ''),
            min_quantity=record.get('min_quantity') or None,
            volume_discounts=record.get('volume_discounts') or None,
        )


class RateRegistry:
    """
    Registry of all pricing rates with validation

    This is the single source of truth for rate lookups.

    Example:
        registry = RateRegistry(rate_tables)
        storage = registry.get('storage_per_pallet_month')
        price = storage.value
    """

    # pallet_out is optional, rate sheet only
    REQUIRED = [
        'pallet_in', 'storage_per_pallet_month',
        'area_rental_per_sq_ft_year', 'area_rental_min_sq_ft',
        'tax_rate', 'due_in_days',
    ]

    def __init__(self, rate_tables: Dict[str, Any]):
        """
        Initialize registry from rate tables

        Args:
            rate_tables: Raw rate tables dict loaded from JSON
        """
        self._tables = rate_tables
        self._rates = self._build_registry()
        self._validate()
        self.volume_discounts = self._build_volume_discounts()
        self.membership_discounts = self._build_membership_discounts()

    def _build_registry(self) -> Dict[str, UnitRate]:
        """
        Build flat registry from the nested rate tables

        When the JSON layout changes, only THIS method needs updating.
        """
        rates = {}
        pallet = self._tables.get('pallet_services', {})
        area = self._tables.get('area_rental', {})
        invoicing = self._tables.get('invoicing', {})

        def add(name, section, key, unit, description, source):
            if key in section:
                rates[name] = UnitRate(name, float(section[key]), unit, description, source)

        add('pallet_in', pallet, 'pallet_in', RateUnit.PER_PALLET,
            'Pallet in (handling)', 'pallet_services.pallet_in')
        add('pallet_out', pallet, 'pallet_out', RateUnit.PER_PALLET,
            'Pallet out (handling)', 'pallet_services.pallet_out')
        add('storage_per_pallet_month', pallet, 'storage_per_pallet_per_month',
            RateUnit.PER_PALLET_MONTH, 'Pallet storage', 'pallet_services.storage_per_pallet_per_month')
        add('area_rental_per_sq_ft_year', area, 'per_sq_ft_per_year', RateUnit.PER_SQ_FT_YEAR,
            'Area rental', 'area_rental.per_sq_ft_per_year')
        add('area_rental_min_sq_ft', area, 'min_sq_ft', RateUnit.SQ_FT,
            'Area rental minimum', 'area_rental.min_sq_ft')
        add('tax_rate', invoicing, 'tax_rate', RateUnit.FACTOR,
            'Invoice tax rate', 'invoicing.tax_rate')
        add('due_in_days', invoicing, 'due_in_days', RateUnit.DAYS,
            'Invoice payment terms', 'invoicing.due_in_days')
        return rates

    def _validate(self):
        """Validate that all expected rates are present"""
        missing = [name for name in self.REQUIRED if name not in self._rates]
        if missing:
            raise ValueError(f"Rate registry validation failed. Missing rates: {missing}")

    def _build_volume_discounts(self) -> List[VolumeDiscount]:
        return sorted(
            (VolumeDiscount(int(d['pallet_threshold']), float(d['discount_percent']))
             for d in self._tables.get('volume_discounts', [])),
            key=lambda d: d.pallet_threshold,
        )

    def _build_membership_discounts(self) -> Dict[MembershipTier, float]:
        discounts = {}
        for tier_name, percent in self._tables.get('membership_discounts', {}).items():
            discounts[MembershipTier(tier_name)] = float(percent)
        return discounts

    def get(self, semantic_name: str) -> UnitRate:
        """
        Get rate by semantic name

        Raises:
            KeyError: If rate not found
        """
        if semantic_name not in self._rates:
            available = ', '.join(sorted(self._rates))
            raise KeyError(f"Rate '{semantic_name}' not found in registry. Available rates: {available}")
        return self._rates[semantic_name]

    def value(self, semantic_name: str) -> float:
        return self.get(semantic_name).value

    def membership_discount_percent(self, tier) -> float:
        """Discount percent for a membership tier; 0 for no tier or an unknown one"""
        if tier is None:
            return 0.0
        try:
            tier = MembershipTier(tier)
        except ValueError:
            logger.warning("Unknown membership tier %r, applying no membership discount", tier)
            return 0.0
        return self.membership_discounts.get(tier, 0.0)

    def list_rates(self) -> List[UnitRate]:
        return sorted(self._rates.values(), key=lambda r: r.semantic_name)

    def __repr__(self) -> str:
        return f"RateRegistry({len(self._rates)} rates loaded)"


def load_rate_tables(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load rate tables from `path`, $WAREHOUSE_RATE_TABLES, or the packaged JSON"""
    base = path or os.environ.get(RATE_TABLES_ENV) or DEFAULT_RATE_TABLES_PATH
    with open(base, "r", encoding="utf-8") as fp:
        return json.load(fp)
