"""
Table-driven pricing engine.

Prices pallet storage and area rental bookings from the rate tables:

1. Base amount = rate x quantity x duration (plus pallet-in handling).
2. Volume discount: the single highest threshold reached by the customer's
   cumulative pallet count. Discounts are never stacked.
3. Membership discount: applied afterwards to the volume-discounted amount.
4. Every money figure is rounded to cents.

When a DataTables store is supplied, each priced line is recorded in the
`price_items` ledger.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from .data_tables import DataTables
from .rate_registry import (
    BookingType,
    MembershipTier,
    RateRegistry,
    VolumeDiscount,
    WarehousePricing,
)

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")


class PricingError(ValueError):
    """A booking cannot be priced (wrong type, below minimum area...)"""


def round_currency(value: float) -> float:
    """Round half-up to cents"""
    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def _clamp_quantity(value: Optional[float]) -> float:
    """Non-negative finite quantity; anything else prices as zero"""
    if value is None:
        return 0.0
    value = float(value)
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


def select_volume_discount(pallet_count: float, discounts: List[VolumeDiscount]) -> Optional[VolumeDiscount]:
    """Highest-threshold discount the pallet count qualifies for, or None"""
    for discount in sorted(discounts, key=lambda d: d.pallet_threshold, reverse=True):
        if pallet_count >= discount.pallet_threshold:
            return discount
    return None


def _month_label(months: float) -> str:
    months_text = f"{months:g}"
    return f"{months_text} month" if months == 1 else f"{months_text} months"


@dataclass
class PricingRequest:
    booking_type: BookingType
    pallet_count: float = 0
    area_sq_ft: float = 0
    months: float = 1
    membership_tier: Optional[MembershipTier] = None
    existing_pallet_count: float = 0

    def __post_init__(self):
        self.booking_type = BookingType(self.booking_type)
        if self.membership_tier is not None and not isinstance(self.membership_tier, MembershipTier):
            try:
                self.membership_tier = MembershipTier(self.membership_tier)
            except ValueError:
                logger.warning("Unknown membership tier %r ignored", self.membership_tier)
                self.membership_tier = None

    @property
    def quantity(self) -> float:
        if self.booking_type == BookingType.PALLET:
            return self.pallet_count or 0
        return self.area_sq_ft or 0

    @property
    def duration_months(self) -> float:
        if self.months is None or not math.isfinite(self.months) or self.months <= 0:
            return 1
        return self.months


@dataclass
class PricingLine:
    item: str
    quantity: float
    unit_price: float
    total: float


@dataclass
class PricingResult:
    base_amount: float = 0.0
    volume_discount: float = 0.0
    volume_discount_percent: float = 0.0
    membership_discount: float = 0.0
    membership_discount_percent: float = 0.0
    subtotal: float = 0.0
    total_discount: float = 0.0
    total_discount_percent: float = 0.0
    final_amount: float = 0.0
    breakdown: List[PricingLine] = field(default_factory=list)

    @property
    def volume_adjusted_amount(self) -> float:
        return round_currency(self.base_amount - self.volume_discount)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_amount": self.base_amount,
            "volume_discount": self.volume_discount,
            "volume_discount_percent": self.volume_discount_percent,
            "membership_discount": self.membership_discount,
            "membership_discount_percent": self.membership_discount_percent,
            "subtotal": self.subtotal,
            "total_discount": self.total_discount,
            "total_discount_percent": self.total_discount_percent,
            "final_amount": self.final_amount,
            "breakdown": [line.__dict__.copy() for line in self.breakdown],
        }


class PricingEngine:
    def __init__(
        self,
        rate_tables: Dict[str, Any],
        store: Optional[DataTables] = None,
        project_id: Optional[str] = None,
    ):
        self.rate_tables = rate_tables
        self.registry = RateRegistry(rate_tables)
        self.store = store
        self.project_id = project_id
        self.diagnostics: Dict[str, Any] = {"warnings": [], "errors": []}
        self._element_id: Optional[str] = None

        if self.store is not None:
            self.store.ensure_unit_rates(rate_tables)

    # ------------------------------------------------------------------ public
    def calculate(self, request: PricingRequest,
                  warehouse_pricing: Optional[WarehousePricing] = None) -> PricingResult:
        if request.booking_type == BookingType.PALLET:
            return self.calculate_pallet_pricing(request, warehouse_pricing)
        return self.calculate_area_rental_pricing(request, warehouse_pricing)

    def total_price(self, request: PricingRequest,
                    warehouse_pricing: Optional[WarehousePricing] = None) -> float:
        return self.calculate(request, warehouse_pricing).final_amount

    def calculate_pallet_pricing(self, request: PricingRequest,
                                 warehouse_pricing: Optional[WarehousePricing] = None) -> PricingResult:
        if request.booking_type != BookingType.PALLET:
            raise PricingError("Pallet pricing requires a pallet booking")

        pallets = _clamp_quantity(request.pallet_count)
        if pallets == 0:
            return PricingResult()

        months = request.duration_months
        cumulative = pallets + _clamp_quantity(request.existing_pallet_count)

        if warehouse_pricing is not None:
            storage_rate = float(warehouse_pricing.base_price)
            pallet_in_rate = 0.0
            discounts = warehouse_pricing.discount_table() or self.registry.volume_discounts
            storage_key = "warehouse_pricing.base_price"
        else:
            storage_rate = self.registry.value("storage_per_pallet_month")
            pallet_in_rate = self.registry.value("pallet_in")
            discounts = self.registry.volume_discounts
            storage_key = "pallet_services.storage_per_pallet_per_month"

        pallet_in_cost = round_currency(pallets * pallet_in_rate)
        storage_cost = round_currency(pallets * storage_rate * months)
        base_amount = round_currency(pallet_in_cost + storage_cost)

        breakdown = []
        if pallet_in_cost > 0:
            breakdown.append(PricingLine("Pallet In", pallets, pallet_in_rate, pallet_in_cost))
        breakdown.append(PricingLine(
            f"Storage ({_month_label(months)})",
            pallets,
            round_currency(storage_rate * months),
            storage_cost,
        ))

        volume = select_volume_discount(cumulative, discounts)
        volume_percent = volume.discount_percent if volume else 0.0

        result = self._apply_discounts(base_amount, volume_percent,
                                       request.membership_tier, breakdown)

        self._record_lines(result, "pallet", {
            "Pallet In": "pallet_services.pallet_in",
            "Storage": storage_key,
        })
        return result

    def calculate_area_rental_pricing(self, request: PricingRequest,
                                      warehouse_pricing: Optional[WarehousePricing] = None) -> PricingResult:
        if request.booking_type != BookingType.AREA_RENTAL:
            raise PricingError("Area rental pricing requires an area-rental booking")

        area = _clamp_quantity(request.area_sq_ft)
        if area == 0:
            return PricingResult()

        if warehouse_pricing is not None:
            minimum = float(warehouse_pricing.min_quantity or self.registry.value("area_rental_min_sq_ft"))
            unit = (warehouse_pricing.unit or "").lower()
            if "per_year" in unit:
                monthly_rate = float(warehouse_pricing.base_price) / 12
            else:
                monthly_rate = float(warehouse_pricing.base_price)
            rate_key = "warehouse_pricing.base_price"
        else:
            minimum = self.registry.value("area_rental_min_sq_ft")
            monthly_rate = self.registry.value("area_rental_per_sq_ft_year") / 12
            rate_key = "area_rental.per_sq_ft_per_year"

        if area < minimum:
            raise PricingError(f"Minimum area rental is {minimum:,.0f} sq ft (requested {area:,.0f})")

        months = request.duration_months
        base_amount = round_currency(area * monthly_rate * months)
        breakdown = [PricingLine(f"Area Rental ({_month_label(months)})", 1, base_amount, base_amount)]

        # Volume thresholds are pallet counts; area rentals only get membership discounts
        result = self._apply_discounts(base_amount, 0.0, request.membership_tier, breakdown)

        self._record_lines(result, "area_rental", {"Area Rental": rate_key})
        return result

    def calculate_storage_renewal(self, pallet_count: float,
                                  membership_tier: Optional[MembershipTier] = None,
                                  warehouse_pricing: Optional[WarehousePricing] = None) -> PricingResult:
        """
        Recurring monthly storage charge for an active pallet booking

        Storage rate only (no handling fee, no volume discount), membership
        discount applied.
        """
        pallets = _clamp_quantity(pallet_count)
        if pallets == 0:
            return PricingResult()

        if warehouse_pricing is not None:
            storage_rate = float(warehouse_pricing.base_price)
        else:
            storage_rate = self.registry.value("storage_per_pallet_month")

        storage_cost = round_currency(pallets * storage_rate)
        breakdown = [PricingLine(f"Monthly Storage ({pallets:g} pallets)", pallets, storage_rate, storage_cost)]
        result = self._apply_discounts(storage_cost, 0.0, membership_tier, breakdown)

        self._record_lines(result, "monthly_storage", {"Monthly Storage": "pallet_services.storage_per_pallet_per_month"})
        return result

    # ---------------------------------------------------------------- utilities
    def _apply_discounts(self, base_amount: float, volume_percent: float,
                         membership_tier: Optional[MembershipTier],
                         breakdown: List[PricingLine]) -> PricingResult:
        volume_discount = round_currency(base_amount * volume_percent / 100)
        after_volume = round_currency(base_amount - volume_discount)

        membership_percent = self.registry.membership_discount_percent(membership_tier)
        membership_discount = round_currency(after_volume * membership_percent / 100)

        total_discount = round_currency(volume_discount + membership_discount)
        final_amount = max(0.0, round_currency(base_amount - total_discount))
        total_discount_percent = (total_discount / base_amount * 100) if base_amount > 0 else 0.0

        if final_amount <= 0 and base_amount > 0:
            self._warn("Discounts consumed the entire base amount.",
                       {"base_amount": base_amount, "total_discount": total_discount})

        return PricingResult(
            base_amount=base_amount,
            volume_discount=volume_discount,
            volume_discount_percent=volume_percent,
            membership_discount=membership_discount,
            membership_discount_percent=membership_percent,
            subtotal=base_amount,
            total_discount=total_discount,
            total_discount_percent=round(total_discount_percent, 4),
            final_amount=final_amount,
            breakdown=breakdown,
        )

    def _record_lines(self, result: PricingResult, category: str, rate_keys: Dict[str, str]) -> None:
        if self.store is None or self.project_id is None:
            return
        element_id = self._ensure_element()
        for line in result.breakdown:
            rate_key = next((key for prefix, key in rate_keys.items() if line.item.startswith(prefix)), None)
            self.store.add_price_item(
                self.project_id,
                element_id=element_id,
                rate_key=rate_key,
                category=category,
                description=line.item,
                unit="EA" if category == "area_rental" else "PALLET",
                quantity=line.quantity,
                unit_price=line.unit_price,
                total=line.total,
                source_pass="pricing",
            )
        for label, amount, percent, key in (
            ("Volume Discount", result.volume_discount, result.volume_discount_percent, "volume_discounts"),
            ("Membership Discount", result.membership_discount, result.membership_discount_percent, "membership_discounts"),
        ):
            if amount > 0:
                self.store.add_price_item(
                    self.project_id,
                    element_id=element_id,
                    rate_key=key,
                    category="discount",
                    description=f"{label} ({percent:g}%)",
                    unit="USD",
                    quantity=1,
                    unit_price=-amount,
                    total=-amount,
                    source_pass="pricing",
                )

    def _ensure_element(self) -> str:
        if self._element_id is None:
            self._element_id = self.store.add_element(self.project_id, "pricing", name="booking_quote")
        return self._element_id

    def _warn(self, message: str, detail: Optional[Dict[str, Any]] = None) -> None:
        logger.warning(message)
        self.diagnostics["warnings"].append({"message": message, "detail": detail or {}})
