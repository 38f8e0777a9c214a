from datetime import date

import pytest

from warehouse_planner.data_tables import DataTables
from warehouse_planner.invoices import (
    Booking,
    Invoice,
    InvoiceError,
    InvoiceGenerator,
    InvoiceItem,
    InvoiceStatus,
    InvoiceType,
    ServiceOrder,
    ServiceOrderItem,
)
from warehouse_planner.pricing_engine import PricingEngine, PricingError
from warehouse_planner.rate_registry import BookingType, MembershipTier

TODAY = date(2026, 3, 15)


@pytest.fixture
def generator(rate_tables):
    return InvoiceGenerator(PricingEngine(rate_tables), today=lambda: TODAY)


def pallet_booking(booking_id="b-1", pallets=60, status="active", customer_id="c-1"):
    return Booking(booking_id, customer_id, "Acme Foods", BookingType.PALLET,
                   status=status, pallet_count=pallets)


def area_booking(booking_id="b-area", sq_ft=40000):
    return Booking(booking_id, "c-2", "Bulk Co", "area-rental", area_sq_ft=sq_ft)


def test_booking_invoice_lines_and_totals(generator):
    invoice = generator.generate_booking_invoice(pallet_booking(), MembershipTier.GOLD)
    assert [item.description for item in invoice.items] == [
        "Pallet In",
        "Storage (1 month)",
        "Volume Discount (10%)",
        "Membership Discount (10%)",
    ]
    assert invoice.items[2].total == -135.0
    assert invoice.items[3].total == -121.5
    assert invoice.subtotal == 1093.5
    assert invoice.tax == 87.48
    assert invoice.total == 1180.98
    assert invoice.status == InvoiceStatus.PENDING
    assert invoice.invoice_type == InvoiceType.BOOKING
    assert invoice.created_at == TODAY
    assert invoice.due_date == date(2026, 4, 14)
    assert sum(item.total for item in invoice.items) == pytest.approx(invoice.subtotal)


def test_booking_invoice_for_area_rental(generator):
    invoice = generator.generate_booking_invoice(area_booking())
    assert invoice.items[0].description == "Area Rental (1 month)"
    assert invoice.subtotal == 66666.67


def test_booking_invoice_pricing_failure_is_chained(generator):
    with pytest.raises(InvoiceError) as excinfo:
        generator.generate_booking_invoice(area_booking(sq_ft=1000))
    assert isinstance(excinfo.value.__cause__, PricingError)


def test_booking_without_quantity_is_rejected(generator):
    with pytest.raises(InvoiceError):
        generator.generate_booking_invoice(pallet_booking(pallets=0))


def test_monthly_storage_invoice(generator):
    invoice = generator.generate_monthly_storage_invoice(pallet_booking(pallets=10), MembershipTier.SILVER)
    assert invoice.invoice_type == InvoiceType.MONTHLY_STORAGE
    assert invoice.items[0].description == "Monthly Storage (10 pallets)"
    assert invoice.items[1].total == -8.75
    assert invoice.subtotal == 166.25
    assert invoice.tax == 13.3
    assert invoice.total == 179.55


def test_monthly_storage_requires_active_pallet_booking(generator):
    with pytest.raises(InvoiceError, match="not active"):
        generator.generate_monthly_storage_invoice(pallet_booking(status="cancelled"))
    with pytest.raises(InvoiceError, match="not a pallet booking"):
        generator.generate_monthly_storage_invoice(area_booking())


def test_monthly_storage_refuses_second_invoice_in_same_month(generator):
    booking = pallet_booking()
    first = generator.generate_monthly_storage_invoice(booking)
    with pytest.raises(InvoiceError, match="already generated"):
        generator.generate_monthly_storage_invoice(booking, existing_invoices=[first])


def test_monthly_storage_allows_new_month(generator, rate_tables):
    booking = pallet_booking()
    february = InvoiceGenerator(PricingEngine(rate_tables), today=lambda: date(2026, 2, 27))
    previous = february.generate_monthly_storage_invoice(booking)
    invoice = generator.generate_monthly_storage_invoice(booking, existing_invoices=[previous])
    assert invoice.period == "2026-03"


def test_booking_invoice_in_same_month_does_not_block_storage(generator):
    booking = pallet_booking()
    first = generator.generate_booking_invoice(booking)
    invoice = generator.generate_monthly_storage_invoice(booking, existing_invoices=[first])
    assert invoice.booking_id == booking.booking_id


def test_annual_rental_invoice_covers_twelve_months(generator):
    invoice = generator.generate_annual_rental_invoice(area_booking())
    assert invoice.items[0].description == "Area Rental (12 months)"
    assert invoice.subtotal == 800000.0
    assert invoice.tax == 64000.0
    assert invoice.total == 864000.0


def test_annual_rental_rejects_pallet_booking(generator):
    with pytest.raises(InvoiceError):
        generator.generate_annual_rental_invoice(pallet_booking())


def test_service_order_invoice(generator):
    order = ServiceOrder(
        "so-1", "c-1", "Acme Foods", "completed",
        items=[ServiceOrderItem("Shrink wrap", 10, 10.0, 100.0),
               ServiceOrderItem("Labeling", 25, 2.0, 50.0)],
        booking_id="b-1",
    )
    invoice = generator.generate_service_order_invoice(order, "gold")
    assert invoice.items[-1].description == "Membership Discount (gold - 10%)"
    assert invoice.subtotal == 135.0
    assert invoice.tax == 10.8
    assert invoice.total == 145.8
    assert invoice.service_order_id == "so-1"
    assert invoice.invoice_type == InvoiceType.SERVICE_ORDER


def test_service_order_must_be_completed(generator):
    order = ServiceOrder("so-2", "c-1", "Acme Foods", "in-progress")
    with pytest.raises(InvoiceError, match="completed"):
        generator.generate_service_order_invoice(order)


def test_monthly_batch_collects_errors(generator):
    existing = Invoice(
        invoice_id="prev", customer_id="c-4", customer_name="Dup Inc",
        invoice_type=InvoiceType.MONTHLY_STORAGE,
        items=[InvoiceItem("Monthly Storage (5 pallets)", 5, 17.5, 87.5)],
        subtotal=87.5, tax=7.0, total=94.5,
        due_date=date(2026, 4, 1), created_at=date(2026, 3, 2), booking_id="b-4",
    )
    bookings = [
        pallet_booking("b-1", pallets=10, customer_id="c-1"),
        pallet_booking("b-2", status="completed", customer_id="c-2"),
        area_booking("b-3"),
        pallet_booking("b-4", pallets=5, customer_id="c-4"),
    ]
    run = generator.generate_monthly_invoices(
        bookings,
        membership_tiers={"c-1": MembershipTier.PLATINUM},
        existing_invoices=[existing],
    )
    assert run.generated == 1
    assert run.invoices[0].booking_id == "b-1"
    assert run.invoices[0].subtotal == 148.75
    assert len(run.errors) == 1
    assert run.errors[0].startswith("Failed to generate invoice for booking b-4")


def test_invoices_are_written_to_store(rate_tables):
    store = DataTables()
    generator = InvoiceGenerator(PricingEngine(rate_tables), store=store, today=lambda: TODAY)
    generator.generate_booking_invoice(pallet_booking())
    invoices = store.fetch_dataframe("invoices")
    assert len(invoices) == 1
    assert invoices.loc[0, "invoice_type"] == "booking"
    assert invoices.loc[0, "due_date"] == "2026-04-14"
