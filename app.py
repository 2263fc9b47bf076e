"""
Stockroom Dashboard

A Streamlit app for loading supplier documents, browsing consolidated stock
and reconciling physical counts.
Run with: streamlit run app.py
"""

import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

import streamlit as st
import pandas as pd
import plotly.graph_objects as go

from stockroom.config import Settings
from stockroom.clients import DocumentExtractor, DocumentIngestor, build_document_stores
from stockroom.core.models import DocumentType, SourceDocument
from stockroom.core.analysis import (
    compute_key_metrics,
    documents_to_frame,
    group_inventory,
    monthly_spend,
    search_inventory,
    stock_by_category,
    stock_by_unit,
)
from stockroom.core.reports import (
    format_currency,
    inventory_export_filename,
    inventory_report,
    reconciliation_export_filename,
    reconciliation_report,
    reconciliation_report_html,
    to_excel_bytes,
)
from stockroom.errors import ExtractionError
from stockroom.warehouse import SyncStatus, Warehouse

settings = Settings.from_env()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("stockroom.app")

# Page config
st.set_page_config(
    page_title="Stockroom",
    page_icon="📦",
    layout="wide",
)

UNIT_COLORS = {"UD": "#6366f1", "KG": "#10b981", "CJ": "#f59e0b"}
STATUS_EMOJI = {"OK": "🟢", "Surplus": "🟠", "Shortage": "🔴"}
UPLOAD_TYPES = ["pdf", "png", "jpg", "jpeg", "webp"]


@st.cache_resource
def get_warehouse() -> tuple[Warehouse, SyncStatus]:
    """One warehouse per server process, loaded once."""
    warehouse = Warehouse(*build_document_stores(settings))
    return warehouse, warehouse.load()


@st.cache_resource
def get_extractor() -> DocumentExtractor:
    return DocumentExtractor(model=settings.extraction_model)


def notify(status) -> None:
    """Queue a notification to show after the rerun."""
    st.session_state["notification"] = status


def show_notification() -> None:
    status = st.session_state.pop("notification", None)
    if status is None:
        return
    if status.ok:
        st.toast(status.message, icon="✅")
    else:
        st.toast(status.message, icon="⚠️")


warehouse, load_status = get_warehouse()
ingestor = DocumentIngestor()

if not load_status.ok and not st.session_state.get("load_notified"):
    st.session_state["load_notified"] = True
    notify(load_status)

# --- Sidebar ---
st.sidebar.title("📦 Stockroom")
page = st.sidebar.radio(
    "View",
    ["Dashboard", "Inventory", "Invoices", "Delivery Notes", "Physical Counts", "Settings"],
)
if warehouse.remote_enabled:
    st.sidebar.caption("☁️ Cloud sync active")
else:
    st.sidebar.caption("💾 Local only")

show_notification()


def render_dashboard() -> None:
    st.title("Dashboard")
    inventory_df = warehouse.inventory_frame()
    stock_docs = [d for d in warehouse.documents() if d.doc_type.contributes_to_stock]
    docs_df = documents_to_frame(stock_docs)
    metrics = compute_key_metrics(inventory_df, docs_df)

    # --- Key Metrics Row ---
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Stock Value", format_currency(metrics["total_stock_value"]))
    with col2:
        st.metric("Products", metrics["unique_products"], delta=f"{metrics['stock_entries']} stock lines")
    with col3:
        st.metric("Suppliers", metrics["total_suppliers"])
    with col4:
        st.metric("Documents", metrics["total_documents"], delta=format_currency(metrics["total_spend"]))

    st.divider()
    left_col, right_col = st.columns([2, 1])

    with left_col:
        spend = monthly_spend(docs_df)
        fig_spend = go.Figure(
            data=[
                go.Bar(
                    x=[str(p) for p in spend.index],
                    y=spend.values,
                    marker_color="#6366f1",
                )
            ]
        )
        fig_spend.update_layout(
            title="Monthly Purchases",
            height=320,
            margin=dict(t=40, b=20, l=20, r=20),
            yaxis_title="€",
        )
        st.plotly_chart(fig_spend, use_container_width=True)

    with right_col:
        by_unit = stock_by_unit(inventory_df)
        fig_units = go.Figure(
            data=[
                go.Pie(
                    labels=list(by_unit.index),
                    values=list(by_unit.values),
                    hole=0.4,
                    marker_colors=[UNIT_COLORS.get(u, "#94a3b8") for u in by_unit.index],
                )
            ]
        )
        fig_units.update_layout(
            title="Stock by Unit",
            height=320,
            margin=dict(t=40, b=20, l=20, r=20),
            legend=dict(orientation="h", yanchor="bottom", y=-0.2),
        )
        st.plotly_chart(fig_units, use_container_width=True)

    by_category = stock_by_category(inventory_df).head(10).sort_values()
    if len(by_category) > 0:
        fig_cat = go.Figure(
            data=[go.Bar(x=by_category.values, y=by_category.index, orientation="h", marker_color="#10b981")]
        )
        fig_cat.update_layout(
            title="Stock by Category",
            height=300,
            margin=dict(t=40, b=20, l=20, r=20),
        )
        st.plotly_chart(fig_cat, use_container_width=True)


def render_inventory() -> None:
    st.title("Inventory")
    st.caption("Stock is derived from invoices and delivery notes. Edit or delete the source document to change it.")

    inventory_df = warehouse.inventory_frame()
    if len(inventory_df) == 0:
        st.info("No stock yet. Load an invoice or a delivery note.")
        return

    search_col, group_col = st.columns([3, 1])
    with search_col:
        term = st.text_input("Search", placeholder="Product, supplier, code, document, category")
    with group_col:
        group_by = st.selectbox("Group by", ["month", "category", "supplier", "none"])

    filtered = search_inventory(inventory_df, term)
    for label, group in group_inventory(filtered, group_by).items():
        st.subheader(f"{label} ({len(group)})")
        display_df = inventory_report(group)
        st.dataframe(
            display_df,
            use_container_width=True,
            hide_index=True,
            column_config={
                "Stock": st.column_config.NumberColumn(format="%.2f"),
                "Avg Unit Price": st.column_config.NumberColumn(format="€ %.2f"),
                "Total Value": st.column_config.NumberColumn(format="€ %.2f"),
            },
        )


def render_upload(doc_type: DocumentType) -> None:
    types = UPLOAD_TYPES + (["xlsx", "csv"] if doc_type is DocumentType.PHYSICAL_COUNT else [])
    uploaded = st.file_uploader(f"Load a {doc_type.label.lower()}", type=types, key=f"upload-{doc_type.value}")
    if uploaded is None or st.session_state.get(f"done-{doc_type.value}") == uploaded.file_id:
        return

    with st.spinner("Reading document..."):
        try:
            doc = ingestor.ingest(
                uploaded.getvalue(),
                uploaded.type,
                uploaded.name,
                doc_type,
                extractor=get_extractor(),
            )
        except ExtractionError as e:
            st.error(f"{e} Please try again.")
            return

    st.session_state[f"done-{doc_type.value}"] = uploaded.file_id
    notify(warehouse.add_document(doc))
    st.rerun()


def render_documents(doc_type: DocumentType) -> None:
    st.title(f"{doc_type.label}s")
    render_upload(doc_type)

    documents = warehouse.documents(doc_type)
    if not documents:
        st.info(f"No {doc_type.label.lower()}s loaded.")
        return

    for doc in documents:
        header = f"{doc.date:%d/%m/%Y} · {doc.document_number} · {doc.supplier}"
        if doc_type is not DocumentType.PHYSICAL_COUNT:
            header += f" · {format_currency(doc.total_amount)}"
        with st.expander(header):
            edit_col, delete_col = st.columns([3, 1])
            with edit_col:
                supplier = st.text_input("Supplier", value=doc.supplier, key=f"supplier-{doc.id}")
                if st.button("Save supplier", key=f"save-{doc.id}"):
                    notify(warehouse.rename_supplier(doc.id, supplier))
                    st.rerun()
            with delete_col:
                confirm = st.checkbox("Confirm delete", key=f"confirm-{doc.id}")
                if st.button("Delete", key=f"delete-{doc.id}", disabled=not confirm):
                    notify(warehouse.delete_document(doc.id))
                    st.rerun()

            if doc_type is DocumentType.PHYSICAL_COUNT:
                render_reconciliation(doc.id)
            else:
                items_df = documents_to_items_frame(doc)
                st.dataframe(items_df, use_container_width=True, hide_index=True)


def documents_to_items_frame(doc: SourceDocument) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "SKU": item.sku or "N/A",
                "Description": item.name,
                "Qty": item.quantity,
                "Unit": item.unit_of_measure,
                "Unit Price": round(item.unit_price, 2),
                "Total": round(item.total_price, 2),
                "Category": item.category,
            }
            for item in doc.line_items
        ]
    )


def render_reconciliation(doc_id: str) -> None:
    result = warehouse.reconcile(doc_id)
    summary = result.summary()

    col1, col2, col3 = st.columns(3)
    col1.metric("OK", summary["ok"])
    col2.metric("Surplus", summary["surplus"])
    col3.metric("Shortage", summary["shortage"])

    report_df = reconciliation_report(result)
    display_df = report_df.copy()
    display_df["Status"] = display_df["Status"].apply(lambda x: f"{STATUS_EMOJI.get(x, '')} {x}")
    st.dataframe(display_df, use_container_width=True, hide_index=True)
    st.caption(f"Matched {summary['matched']} of {summary['total']} counted lines ({summary['match_rate']})")

    excel_col, print_col = st.columns(2)
    with excel_col:
        st.download_button(
            "Download Excel report",
            data=to_excel_bytes(report_df, "Reconciliation"),
            file_name=reconciliation_export_filename(result),
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            key=f"xlsx-{doc_id}",
        )
    with print_col:
        st.download_button(
            "Download printable report",
            data=reconciliation_report_html(result),
            file_name=reconciliation_export_filename(result).replace(".xlsx", ".html"),
            mime="text/html",
            key=f"html-{doc_id}",
        )


def render_settings() -> None:
    st.title("Settings")

    st.subheader("☁️ Cloud Database")
    if warehouse.remote_enabled:
        st.success("Connected to Supabase. Every device shares the same warehouse.")
    else:
        st.info("Set SUPABASE_URL and SUPABASE_ANON_KEY to share the warehouse across devices.")

    st.subheader("📊 Excel Report")
    inventory_df = warehouse.inventory_frame()
    st.download_button(
        "Export stock",
        data=to_excel_bytes(inventory_report(inventory_df), "Stock"),
        file_name=inventory_export_filename(),
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        disabled=len(inventory_df) == 0,
    )

    st.subheader("🗑️ Full Reset")
    st.warning("This permanently deletes every document, locally and in the cloud.")
    confirm = st.checkbox("I understand, delete everything")
    if st.button("Empty warehouse", type="primary", disabled=not confirm):
        notify(warehouse.reset())
        st.rerun()


if page == "Dashboard":
    render_dashboard()
elif page == "Inventory":
    render_inventory()
elif page == "Invoices":
    render_documents(DocumentType.INVOICE)
elif page == "Delivery Notes":
    render_documents(DocumentType.DELIVERY_NOTE)
elif page == "Physical Counts":
    render_documents(DocumentType.PHYSICAL_COUNT)
else:
    render_settings()

# --- Footer ---
st.divider()
st.caption(
    "Built with Streamlit | "
    f"Documents: {len(warehouse.documents())} | "
    f"Stock lines: {len(warehouse.inventory)}"
)
