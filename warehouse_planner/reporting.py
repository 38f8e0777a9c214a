"""
Reporting utilities for presenting capacity, pricing and invoice data.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

import pandas as pd

from .floor import FloorPlan
from .geometry.pallet_types import CUSTOM_PALLET_LIMITS_CM
from .invoices import Invoice
from .pricing_engine import PricingResult
from .rate_registry import RateRegistry


CAPACITY_COLUMNS = [
    "pallet_type",
    "footprint_m2",
    "footprint_positions",
    "stack_count",
    "stack_source",
    "max_pallets",
    "placed_pallets",
    "utilization_pct",
]


def build_capacity_table(floor: FloorPlan) -> pd.DataFrame:
    """One row per pallet type with positions, stack height and maximum"""
    rows = []
    for pallet_type, result in floor.capacity.by_type.items():
        rows.append({
            "pallet_type": pallet_type.value,
            "footprint_m2": round(result.pallet.footprint_m2, 4),
            "footprint_positions": result.footprint_positions,
            "stack_count": result.stack_count,
            "stack_source": result.stack_source,
            "max_pallets": result.max_pallets,
            "placed_pallets": floor.placed_pallets_by_type.get(pallet_type, 0),
            "utilization_pct": round(floor.plan_utilization_by_type.get(pallet_type, 0.0), 1),
        })
    return pd.DataFrame(rows, columns=CAPACITY_COLUMNS)


def build_pricing_breakdown(result: PricingResult) -> pd.DataFrame:
    """
    Breakdown lines followed by discount lines (negative) and a total row.
    The `total` column sums to the final amount.
    """
    rows: List[Dict[str, Any]] = [
        {"item": line.item, "quantity": line.quantity, "unit_price": line.unit_price, "total": line.total}
        for line in result.breakdown
    ]
    if result.volume_discount > 0:
        rows.append({
            "item": f"Volume Discount ({result.volume_discount_percent:g}%)",
            "quantity": 1,
            "unit_price": -result.volume_discount,
            "total": -result.volume_discount,
        })
    if result.membership_discount > 0:
        rows.append({
            "item": f"Membership Discount ({result.membership_discount_percent:g}%)",
            "quantity": 1,
            "unit_price": -result.membership_discount,
            "total": -result.membership_discount,
        })
    df = pd.DataFrame(rows, columns=["item", "quantity", "unit_price", "total"])
    if not df.empty:
        df["share_pct"] = (df["total"] / result.base_amount * 100).round(2) if result.base_amount else 0.0
    return df


def build_invoice_table(invoices: Iterable[Invoice]) -> pd.DataFrame:
    rows = [
        {
            "invoice_id": inv.invoice_id[:8],
            "booking_id": inv.booking_id,
            "customer_name": inv.customer_name,
            "invoice_type": inv.invoice_type.value,
            "status": inv.status.value,
            "subtotal": inv.subtotal,
            "tax": inv.tax,
            "total": inv.total,
            "created_at": inv.created_at.isoformat(),
            "due_date": inv.due_date.isoformat(),
            "line_items": len(inv.items),
        }
        for inv in invoices
    ]
    return pd.DataFrame(rows, columns=[
        "invoice_id", "booking_id", "customer_name", "invoice_type", "status",
        "subtotal", "tax", "total", "created_at", "due_date", "line_items",
    ])


def build_rate_sheet(registry: RateRegistry) -> pd.DataFrame:
    """Flat rate sheet: unit rates, then volume and membership discounts"""
    rows = [
        {"section": "rates", "name": rate.semantic_name, "value": rate.value,
         "unit": rate.unit.value, "source": rate.source}
        for rate in registry.list_rates()
    ]
    rows.extend(
        {"section": "volume_discounts", "name": f">= {d.pallet_threshold} pallets",
         "value": d.discount_percent, "unit": "%", "source": "volume_discounts"}
        for d in registry.volume_discounts
    )
    rows.extend(
        {"section": "membership_discounts", "name": tier.value, "value": percent,
         "unit": "%", "source": "membership_discounts"}
        for tier, percent in registry.membership_discounts.items()
    )
    return pd.DataFrame(rows, columns=["section", "name", "value", "unit", "source"])


def build_min_diagnostics(floor: FloorPlan) -> Dict[str, Any]:
    """
    Minimal, float-based diagnostics for quick verification in the app.
    - Usable rectangle and storage area with how it was derived
    - Zone coverage against the usable area
    - Stack height checks per pallet type
    - Custom pallet limits and placed vs. maximum pallets
    """
    usable = {
        "gross_area_m2": floor.gross_area_m2,
        "usable_length_m": floor.usable_length_m,
        "usable_width_m": floor.usable_width_m,
        "usable_area_m2": floor.usable_area_m2,
        "storage_area_m2": floor.storage_area_m2,
        "storage_area_source": floor.capacity.storage_area_source,
        "clearance_loss_m2": max(0.0, floor.gross_area_m2 - floor.usable_area_m2),
    }

    active_zones = [z for z in floor.zones if z.active]
    storage_zone_area = sum(z.area_m2 for z in active_zones if z.is_storage)
    other_zone_area = sum(z.area_m2 for z in active_zones if not z.is_storage)
    zones = {
        "active": len(active_zones),
        "inactive": len(floor.zones) - len(active_zones),
        "storage_zone_area_m2": storage_zone_area,
        "other_zone_area_m2": other_zone_area,
        "declared_storage_exceeds_usable": storage_zone_area > floor.usable_area_m2,
        "coverage_pct": (storage_zone_area / floor.usable_area_m2 * 100) if floor.usable_area_m2 > 0 else 0.0,
    }

    stacking = []
    for pallet_type, result in floor.capacity.by_type.items():
        stacked_height = result.stack_count * result.pallet.height_m
        stacking.append({
            "pallet_type": pallet_type.value,
            "stack_count": result.stack_count,
            "stack_source": result.stack_source,
            "stacked_height_m": stacked_height,
            "clear_height_m": floor.clear_stacking_height_m,
            "exceeds_clear_height": stacked_height > floor.clear_stacking_height_m + 1e-9,
        })

    custom = {
        "length_cm": floor.custom_pallet_length_cm,
        "width_cm": floor.custom_pallet_width_cm,
        "height_cm": floor.custom_pallet_height_cm,
        "limits_cm": {k: list(v) for k, v in CUSTOM_PALLET_LIMITS_CM.items()},
    }

    plan = {
        pallet_type.value: {
            "placed": floor.placed_pallets_by_type.get(pallet_type, 0),
            "max": floor.max_pallets_by_type.get(pallet_type, 0),
            "over_capacity": floor.placed_pallets_by_type.get(pallet_type, 0) > floor.max_pallets_by_type.get(pallet_type, 0),
        }
        for pallet_type in floor.capacity.by_type
    }

    return {
        "usable": usable,
        "zones": zones,
        "stacking": stacking,
        "custom_pallet": custom,
        "plan": plan,
        "warnings": list(floor.warnings),
    }
