"""
Invoice generation for bookings and service orders.

Invoices are built from PricingEngine results:
    - booking invoices (first month of a new booking)
    - monthly storage invoices (recurring, active pallet bookings)
    - annual rental invoices (area rentals, twelve months)
    - service order invoices (completed orders)

Every invoice carries tax at the configured rate, is due a fixed number of days
after issue and starts in the `pending` state.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from .data_tables import DataTables
from .pricing_engine import PricingEngine, PricingError, PricingRequest, PricingResult, round_currency
from .rate_registry import BookingType, MembershipTier, WarehousePricing

logger = logging.getLogger(__name__)

MONTHLY_STORAGE_LABEL = "Monthly Storage"
ANNUAL_RENTAL_MONTHS = 12


class InvoiceError(Exception):
    """An invoice cannot be generated for the given booking or order"""


class InvoiceStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class InvoiceType(Enum):
    BOOKING = "booking"
    MONTHLY_STORAGE = "monthly-storage"
    ANNUAL_RENTAL = "annual-rental"
    SERVICE_ORDER = "service-order"


@dataclass
class InvoiceItem:
    description: str
    quantity: float
    unit_price: float
    total: float


@dataclass
class Invoice:
    invoice_id: str
    customer_id: str
    customer_name: str
    invoice_type: InvoiceType
    items: List[InvoiceItem]
    subtotal: float
    tax: float
    total: float
    due_date: date
    created_at: date
    status: InvoiceStatus = InvoiceStatus.PENDING
    booking_id: Optional[str] = None
    service_order_id: Optional[str] = None

    @property
    def period(self) -> str:
        """Calendar month the invoice was issued in (YYYY-MM)"""
        return self.created_at.strftime("%Y-%m")

    def has_item(self, text: str) -> bool:
        return any(text in item.description for item in self.items)


@dataclass
class Booking:
    booking_id: str
    customer_id: str
    customer_name: str
    booking_type: BookingType
    status: str = "active"
    pallet_count: Optional[int] = None
    area_sq_ft: Optional[float] = None
    existing_pallet_count: int = 0
    warehouse_pricing: Optional[WarehousePricing] = None

    def __post_init__(self):
        self.booking_type = BookingType(self.booking_type)

    @property
    def is_active(self) -> bool:
        return self.status == "active"


@dataclass
class ServiceOrderItem:
    service_name: str
    quantity: float
    unit_price: float
    total_price: float


@dataclass
class ServiceOrder:
    order_id: str
    customer_id: str
    customer_name: str
    status: str
    items: List[ServiceOrderItem] = field(default_factory=list)
    booking_id: Optional[str] = None

    @property
    def total_amount(self) -> float:
        return round_currency(sum(item.total_price for item in self.items))


@dataclass
class MonthlyInvoiceRun:
    invoices: List[Invoice] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def generated(self) -> int:
        return len(self.invoices)


def _discount_items(result: PricingResult) -> List[InvoiceItem]:
    items = []
    if result.volume_discount > 0:
        items.append(InvoiceItem(
            f"Volume Discount ({result.volume_discount_percent:g}%)",
            1, -result.volume_discount, -result.volume_discount,
        ))
    if result.membership_discount > 0:
        items.append(InvoiceItem(
            f"Membership Discount ({result.membership_discount_percent:g}%)",
            1, -result.membership_discount, -result.membership_discount,
        ))
    return items


class InvoiceGenerator:
    def __init__(
        self,
        engine: PricingEngine,
        store: Optional[DataTables] = None,
        project_id: Optional[str] = None,
        tax_rate: Optional[float] = None,
        due_in_days: Optional[int] = None,
        today: Callable[[], date] = date.today,
    ):
        self.engine = engine
        self.store = store
        self.project_id = project_id
        self.tax_rate = engine.registry.value("tax_rate") if tax_rate is None else tax_rate
        self.due_in_days = int(engine.registry.value("due_in_days") if due_in_days is None else due_in_days)
        self.today = today

    # ------------------------------------------------------------------ bookings
    def generate_booking_invoice(self, booking: Booking,
                                 membership_tier: Optional[MembershipTier] = None) -> Invoice:
        if booking.booking_type == BookingType.PALLET and booking.pallet_count:
            request = PricingRequest(
                BookingType.PALLET,
                pallet_count=booking.pallet_count,
                months=1,
                membership_tier=membership_tier,
                existing_pallet_count=booking.existing_pallet_count,
            )
        elif booking.booking_type == BookingType.AREA_RENTAL and booking.area_sq_ft:
            request = PricingRequest(
                BookingType.AREA_RENTAL,
                area_sq_ft=booking.area_sq_ft,
                months=1,
                membership_tier=membership_tier,
            )
        else:
            raise InvoiceError(f"Booking {booking.booking_id} has no pallet count or area to invoice")

        result = self._price(request, booking)
        items = self._pricing_items(result)
        return self._issue(InvoiceType.BOOKING, booking.customer_id, booking.customer_name,
                           items, result.final_amount, booking_id=booking.booking_id)

    def generate_monthly_storage_invoice(self, booking: Booking,
                                         membership_tier: Optional[MembershipTier] = None,
                                         existing_invoices: Iterable[Invoice] = ()) -> Invoice:
        if booking.booking_type != BookingType.PALLET or not booking.pallet_count:
            raise InvoiceError(f"Booking {booking.booking_id} is not a pallet booking")
        if not booking.is_active:
            raise InvoiceError(f"Booking {booking.booking_id} is not active")

        period = self.today().strftime("%Y-%m")
        for invoice in existing_invoices:
            if (invoice.booking_id == booking.booking_id and invoice.period == period
                    and invoice.has_item(MONTHLY_STORAGE_LABEL)):
                raise InvoiceError(
                    f"Monthly invoice already generated for booking {booking.booking_id} in {period}"
                )

        try:
            result = self.engine.calculate_storage_renewal(
                booking.pallet_count, membership_tier, booking.warehouse_pricing,
            )
        except PricingError as exc:
            raise InvoiceError(f"Could not price booking {booking.booking_id}: {exc}") from exc

        items = self._pricing_items(result)
        return self._issue(InvoiceType.MONTHLY_STORAGE, booking.customer_id, booking.customer_name,
                           items, result.final_amount, booking_id=booking.booking_id)

    def generate_annual_rental_invoice(self, booking: Booking,
                                       membership_tier: Optional[MembershipTier] = None) -> Invoice:
        if booking.booking_type != BookingType.AREA_RENTAL or not booking.area_sq_ft:
            raise InvoiceError(f"Booking {booking.booking_id} is not an area rental booking")

        request = PricingRequest(
            BookingType.AREA_RENTAL,
            area_sq_ft=booking.area_sq_ft,
            months=ANNUAL_RENTAL_MONTHS,
            membership_tier=membership_tier,
        )
        result = self._price(request, booking)
        items = self._pricing_items(result)
        return self._issue(InvoiceType.ANNUAL_RENTAL, booking.customer_id, booking.customer_name,
                           items, result.final_amount, booking_id=booking.booking_id)

    # ------------------------------------------------------------------ services
    def generate_service_order_invoice(self, order: ServiceOrder,
                                       membership_tier: Optional[MembershipTier] = None) -> Invoice:
        if order.status != "completed":
            raise InvoiceError("Can only generate invoice for completed service orders")

        items = [
            InvoiceItem(item.service_name, item.quantity, item.unit_price, item.total_price)
            for item in order.items
        ]
        subtotal = order.total_amount
        percent = self.engine.registry.membership_discount_percent(membership_tier)
        discount = round_currency(subtotal * percent / 100)
        if discount > 0:
            tier_name = MembershipTier(membership_tier).value
            items.append(InvoiceItem(
                f"Membership Discount ({tier_name} - {percent:g}%)", 1, -discount, -discount,
            ))

        return self._issue(InvoiceType.SERVICE_ORDER, order.customer_id, order.customer_name,
                           items, round_currency(subtotal - discount),
                           booking_id=order.booking_id, service_order_id=order.order_id)

    # ------------------------------------------------------------------ batch
    def generate_monthly_invoices(
        self,
        bookings: Iterable[Booking],
        membership_tiers: Optional[Dict[str, MembershipTier]] = None,
        existing_invoices: Optional[List[Invoice]] = None,
    ) -> MonthlyInvoiceRun:
        """
        Monthly storage run over every active pallet booking

        Tiers are looked up by customer id (bronze when unknown). Failures are
        collected per booking and do not stop the run.
        """
        membership_tiers = membership_tiers or {}
        issued = list(existing_invoices or [])
        run = MonthlyInvoiceRun()

        for booking in bookings:
            if booking.booking_type != BookingType.PALLET or not booking.is_active:
                continue
            tier = membership_tiers.get(booking.customer_id, MembershipTier.BRONZE)
            try:
                invoice = self.generate_monthly_storage_invoice(booking, tier, issued)
            except InvoiceError as exc:
                message = f"Failed to generate invoice for booking {booking.booking_id}: {exc}"
                logger.warning(message)
                run.errors.append(message)
                continue
            issued.append(invoice)
            run.invoices.append(invoice)

        logger.info("Monthly invoice run: %d generated, %d failed", run.generated, len(run.errors))
        return run

    # ------------------------------------------------------------------ helpers
    def _price(self, request: PricingRequest, booking: Booking) -> PricingResult:
        try:
            return self.engine.calculate(request, booking.warehouse_pricing)
        except PricingError as exc:
            raise InvoiceError(f"Could not price booking {booking.booking_id}: {exc}") from exc

    @staticmethod
    def _pricing_items(result: PricingResult) -> List[InvoiceItem]:
        items = [
            InvoiceItem(line.item, line.quantity, line.unit_price, line.total)
            for line in result.breakdown
        ]
        return items + _discount_items(result)

    def _issue(self, invoice_type: InvoiceType, customer_id: str, customer_name: str,
               items: List[InvoiceItem], subtotal: float, *,
               booking_id: Optional[str] = None,
               service_order_id: Optional[str] = None) -> Invoice:
        issued_on = self.today()
        subtotal = round_currency(subtotal)
        tax = round_currency(subtotal * self.tax_rate)
        invoice = Invoice(
            invoice_id=str(uuid.uuid4()),
            customer_id=customer_id,
            customer_name=customer_name,
            invoice_type=invoice_type,
            items=items,
            subtotal=subtotal,
            tax=tax,
            total=round_currency(subtotal + tax),
            due_date=issued_on + timedelta(days=self.due_in_days),
            created_at=issued_on,
            booking_id=booking_id,
            service_order_id=service_order_id,
        )
        if self.store is not None:
            self.store.add_invoice(invoice, project_id=self.project_id)
        logger.info("Issued %s invoice %s for %.2f", invoice_type.value, invoice.invoice_id[:8], invoice.total)
        return invoice
