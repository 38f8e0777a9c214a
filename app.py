"""
Warehouse Floor Planner
Interactive pallet capacity, pricing and invoice preview tool
"""

import io
import logging
from datetime import date

import matplotlib.pyplot as plt
import pandas as pd
import streamlit as st

from warehouse_planner.geometry.pallet_types import CUSTOM_PALLET_LIMITS_CM, PalletType
from warehouse_planner.invoices import Booking, InvoiceError, InvoiceGenerator
from warehouse_planner.pipeline import run_scenario
from warehouse_planner.pricing_engine import PricingEngine, PricingRequest
from warehouse_planner.rate_registry import BookingType, MembershipTier, RateRegistry, load_rate_tables
from warehouse_planner.reporting import (
    build_capacity_table,
    build_invoice_table,
    build_pricing_breakdown,
    build_rate_sheet,
)
from warehouse_planner.visualization import create_3d_floor_model, create_capacity_chart
from visualize_floor_plan import create_floor_plan_figure

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# Page config
st.set_page_config(
    page_title="Warehouse Floor Planner",
    page_icon="📦",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.title("📦 Warehouse Floor Planner")
st.markdown("**Pallet capacity, storage pricing and invoice preview for a single warehouse floor**")


@st.cache_data
def load_rates():
    return load_rate_tables()


rate_tables = load_rates()

# Sidebar - Input Parameters
st.sidebar.header("Floor")

length_m = st.sidebar.number_input("Length (m)", min_value=0.0, value=50.0, step=1.0)
width_m = st.sidebar.number_input("Width (m)", min_value=0.0, value=30.0, step=1.0)
height_m = st.sidebar.number_input("Ceiling height (m)", min_value=0.0, value=10.0, step=0.1)
floor_level = st.sidebar.number_input("Floor level", min_value=1, max_value=10, value=1, step=1)

st.sidebar.markdown("### Clearances")
wall_clearance_m = st.sidebar.number_input("Wall clearance (m)", min_value=0.0, value=0.5, step=0.1)
sprinkler_clearance_m = st.sidebar.number_input("Sprinkler clearance (m)", min_value=0.0, value=0.9, step=0.1)
safety_clearance_m = st.sidebar.number_input("Safety clearance (m)", min_value=0.0, value=0.0, step=0.1)
loading_zone_depth_m = st.sidebar.number_input("Loading zone depth (m)", min_value=0.0, value=0.0, step=0.5)
dock_zone_depth_m = st.sidebar.number_input("Dock zone depth (m)", min_value=0.0, value=0.0, step=0.5)

st.sidebar.markdown("### Pallets")
standard_pallet_height_m = st.sidebar.number_input("Standard pallet height (m)", min_value=0.0, value=1.5, step=0.1)
euro_pallet_height_m = st.sidebar.number_input("Euro pallet height (m)", min_value=0.0, value=1.5, step=0.1)
custom_pallet_length_cm = st.sidebar.slider("Custom length (cm)", *CUSTOM_PALLET_LIMITS_CM["length"], value=100)
custom_pallet_width_cm = st.sidebar.slider("Custom width (cm)", *CUSTOM_PALLET_LIMITS_CM["width"], value=100)
custom_pallet_height_cm = st.sidebar.slider("Custom height (cm)", *CUSTOM_PALLET_LIMITS_CM["height"], value=150)

use_override = st.sidebar.checkbox("Override stack height", value=False)
stacking_override = None
if use_override:
    stacking_override = st.sidebar.number_input("Pallets per stack", min_value=1, max_value=20, value=4, step=1)

st.sidebar.header("Booking")
booking_type = st.sidebar.radio("Booking type", [BookingType.PALLET.value, BookingType.AREA_RENTAL.value],
                                horizontal=True)
if booking_type == BookingType.PALLET.value:
    pallet_count = st.sidebar.number_input("Pallets", min_value=0, value=60, step=1)
    existing_pallet_count = st.sidebar.number_input("Pallets already stored", min_value=0, value=0, step=1)
    area_sq_ft = 0
else:
    pallet_count = 0
    existing_pallet_count = 0
    area_sq_ft = st.sidebar.number_input("Area (sq ft)", min_value=0, value=40000, step=1000)
months = st.sidebar.number_input("Months", min_value=1, max_value=60, value=1, step=1)
tier_label = st.sidebar.selectbox("Membership tier", ["none"] + [t.value for t in MembershipTier])
membership_tier = None if tier_label == "none" else MembershipTier(tier_label)

inputs = {
    "name": f"Floor {int(floor_level)}",
    "floor_level": int(floor_level),
    "length_m": length_m,
    "width_m": width_m,
    "height_m": height_m,
    "wall_clearance_m": wall_clearance_m,
    "sprinkler_clearance_m": sprinkler_clearance_m,
    "safety_clearance_m": safety_clearance_m,
    "loading_zone_depth_m": loading_zone_depth_m,
    "dock_zone_depth_m": dock_zone_depth_m,
    "standard_pallet_height_m": standard_pallet_height_m,
    "euro_pallet_height_m": euro_pallet_height_m,
    "custom_pallet_length_cm": custom_pallet_length_cm,
    "custom_pallet_width_cm": custom_pallet_width_cm,
    "custom_pallet_height_cm": custom_pallet_height_cm,
    "stacking_override": stacking_override,
}
booking_request = PricingRequest(
    booking_type=booking_type,
    pallet_count=pallet_count,
    area_sq_ft=area_sq_ft,
    months=months,
    membership_tier=membership_tier,
    existing_pallet_count=existing_pallet_count,
)

try:
    scenario = run_scenario(inputs=inputs, rate_tables=rate_tables, booking=booking_request)
    floor = scenario.floor
    pricing = scenario.pricing

    # === SUMMARY METRICS ===
    col1, col2, col3, col4, col5 = st.columns(5)
    with col1:
        st.metric("Usable Area", f"{floor.usable_area_m2:,.0f} m²",
                  help="Floor area after wall, safety, loading and dock clearances")
    with col2:
        st.metric("Standard Pallets", f"{floor.max_pallets(PalletType.STANDARD):,}")
    with col3:
        st.metric("Euro Pallets", f"{floor.max_pallets(PalletType.EURO):,}")
    with col4:
        st.metric("Custom Pallets", f"{floor.max_pallets(PalletType.CUSTOM):,}")
    with col5:
        st.metric("Booking Total", f"${pricing.final_amount:,.2f}" if pricing else "n/a",
                  help="Final amount after volume and membership discounts, before tax")

    if scenario.capacity_check is not None:
        if scenario.capacity_check.available:
            st.success(scenario.capacity_check.message)
        else:
            st.warning(scenario.capacity_check.message)
    for message in floor.warnings:
        st.warning(message)

    @st.cache_data(max_entries=50)
    def generate_plan_bytes(_floor, inputs_key):
        """Render the 2D plan once per input set (matplotlib figures don't pickle)"""
        fig = create_floor_plan_figure(_floor)
        buf = io.BytesIO()
        fig.savefig(buf, format='png', dpi=150, bbox_inches='tight')
        plt.close(fig)
        buf.seek(0)
        return buf.getvalue()

    tab1, tab2, tab3, tab4, tab5, tab6, tab7 = st.tabs([
        "📊 Capacity", "💲 Pricing", "🧾 Invoice Preview", "🏗️ 3D Model",
        "📋 2D Plan", "📑 Rate Sheet", "🔍 Ledger",
    ])

    with tab1:
        st.subheader("Capacity by Pallet Type")
        capacity_df = build_capacity_table(floor)
        st.dataframe(capacity_df, use_container_width=True, hide_index=True)
        st.plotly_chart(create_capacity_chart(floor), use_container_width=True)

        st.markdown("### Floor Diagnostics")
        st.json(scenario.diagnostics["floor"])

    with tab2:
        st.subheader("Booking Pricing")
        if pricing is None:
            for error in scenario.diagnostics["pricing"]["errors"]:
                st.error(error["message"])
        else:
            breakdown_df = build_pricing_breakdown(pricing)
            st.dataframe(
                breakdown_df.style.format({"unit_price": "${:,.2f}", "total": "${:,.2f}"}),
                use_container_width=True,
                hide_index=True,
            )
            c1, c2, c3 = st.columns(3)
            c1.metric("Base Amount", f"${pricing.base_amount:,.2f}")
            c2.metric("Total Discount", f"${pricing.total_discount:,.2f}",
                      f"{pricing.total_discount_percent:.1f}%")
            c3.metric("Final Amount", f"${pricing.final_amount:,.2f}")

    with tab3:
        st.subheader("Invoice Preview")
        booking = Booking(
            booking_id="preview",
            customer_id="preview-customer",
            customer_name="Preview Customer",
            booking_type=booking_type,
            pallet_count=pallet_count or None,
            area_sq_ft=area_sq_ft or None,
            existing_pallet_count=existing_pallet_count,
        )
        generator = InvoiceGenerator(PricingEngine(rate_tables), today=date.today)
        try:
            invoice = generator.generate_booking_invoice(booking, membership_tier)
            items_df = pd.DataFrame([item.__dict__ for item in invoice.items])
            st.dataframe(items_df, use_container_width=True, hide_index=True)
            st.dataframe(build_invoice_table([invoice]), use_container_width=True, hide_index=True)
        except InvoiceError as e:
            st.error(str(e))

    with tab4:
        st.subheader("3D Floor Model")
        show_grid = st.checkbox("Show theoretical standard pallet positions", value=False)
        try:
            fig_3d = create_3d_floor_model(floor, show_grid=show_grid)
            st.plotly_chart(fig_3d, use_container_width=True)
        except Exception as e:
            st.error(f"Error generating 3D visualization: {e}")
            import traceback
            st.code(traceback.format_exc())

    with tab5:
        st.subheader("2D Floor Plan")
        with st.spinner("Generating floor plan..."):
            st.image(generate_plan_bytes(floor, tuple(sorted((k, str(v)) for k, v in inputs.items()))),
                     use_container_width=True)

    with tab6:
        st.subheader("Rate Sheet")
        st.dataframe(build_rate_sheet(RateRegistry(rate_tables)), use_container_width=True, hide_index=True)

    with tab7:
        st.subheader("Scenario Ledger")
        table_name = st.selectbox("Table", ["quantities", "price_items", "elements", "unit_rates", "diagnostics"])
        ledger_df = scenario.table(table_name)
        st.dataframe(ledger_df, use_container_width=True, hide_index=True)
        csv_bytes = ledger_df.to_csv(index=False).encode("utf-8")
        st.download_button(f"Download {table_name} (CSV)", csv_bytes,
                           file_name=f"{table_name}.csv", mime="text/csv")

except Exception as e:
    logger.exception("Scenario failed")
    st.error(f"Error calculating floor: {str(e)}")
    import traceback
    st.code(traceback.format_exc())

# Footer
st.markdown("---")
st.markdown("**Warehouse Floor Planner** | Built with Streamlit & Plotly")
