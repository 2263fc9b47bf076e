"""
Stock analysis for the dashboard.

Computes:
- Key metrics (stock value, products, suppliers)
- Stock split by unit and by category
- Monthly purchase spend
- Search and grouping of the consolidated inventory
"""

from typing import Iterable, Literal
import pandas as pd

from .models import SourceDocument
from .parsers import UnitNormalizer

GroupBy = Literal["month", "category", "supplier", "none"]

ALL_STOCK_GROUP = "All Stock"


def documents_to_frame(documents: Iterable[SourceDocument]) -> pd.DataFrame:
    """One row per document, without line items."""
    rows = [
        {
            "id": d.id,
            "document_number": d.document_number,
            "date": pd.Timestamp(d.date),
            "supplier": d.supplier,
            "doc_type": d.doc_type.value,
            "total_amount": d.total_amount,
            "line_items": len(d.line_items),
            "file_name": d.file_name,
        }
        for d in documents
    ]
    columns = ["id", "document_number", "date", "supplier", "doc_type", "total_amount", "line_items", "file_name"]
    return pd.DataFrame(rows, columns=columns)


def compute_key_metrics(
    inventory_df: pd.DataFrame,
    documents_df: pd.DataFrame,
) -> dict:
    """Compute summary metrics for the dashboard header."""
    return {
        "total_stock_value": float(inventory_df["total_price"].sum()) if len(inventory_df) else 0.0,
        "stock_entries": len(inventory_df),
        "unique_products": int(inventory_df["name"].str.lower().nunique()) if len(inventory_df) else 0,
        "total_suppliers": int(documents_df["supplier"].str.lower().nunique()) if len(documents_df) else 0,
        "total_documents": len(documents_df),
        "total_spend": float(documents_df["total_amount"].sum()) if len(documents_df) else 0.0,
    }


def stock_by_unit(inventory_df: pd.DataFrame) -> pd.Series:
    """
    Total quantity per canonical unit.

    Standard units (UD, KG, CJ) are always present, even at zero, so the
    dashboard tiles have something to show.
    """
    totals = pd.Series(0.0, index=list(UnitNormalizer.STANDARD_UNITS))
    if len(inventory_df) == 0:
        return totals

    units = UnitNormalizer().normalize_series(inventory_df["unit_of_measure"])
    by_unit = inventory_df["quantity"].groupby(units).sum()
    return by_unit.add(totals, fill_value=0).reindex(
        list(UnitNormalizer.STANDARD_UNITS)
        + sorted(u for u in by_unit.index if u not in UnitNormalizer.STANDARD_UNITS)
    )


def stock_by_category(inventory_df: pd.DataFrame) -> pd.Series:
    """Total quantity per category, largest first."""
    if len(inventory_df) == 0:
        return pd.Series(dtype=float)
    categories = inventory_df["category"].fillna("").replace("", "Other")
    return (
        inventory_df["quantity"].groupby(categories).sum().sort_values(ascending=False)
    )


def monthly_spend(documents_df: pd.DataFrame) -> pd.Series:
    """Document totals summed per calendar month, oldest month first."""
    if len(documents_df) == 0:
        return pd.Series(dtype=float)
    months = documents_df["date"].dt.to_period("M")
    return documents_df["total_amount"].groupby(months).sum().sort_index()


def search_inventory(inventory_df: pd.DataFrame, term: str = "") -> pd.DataFrame:
    """
    Filter the inventory by a free-text term, newest load first.

    Matches case-insensitively against name, supplier, sku, document number
    and category.
    """
    result = inventory_df.sort_values("document_date", ascending=False, kind="stable")
    term = (term or "").strip().lower()
    if not term:
        return result

    mask = pd.Series(False, index=result.index)
    for col in ["name", "supplier", "sku", "document_number", "category"]:
        mask |= result[col].fillna("").astype(str).str.lower().str.contains(term, regex=False)
    return result[mask]


def _month_label(value) -> str:
    if value is None or pd.isna(value):
        return "Undated"
    return pd.Timestamp(value).strftime("%B %Y")


def group_inventory(inventory_df: pd.DataFrame, by: GroupBy = "month") -> dict[str, pd.DataFrame]:
    """Split the inventory into labelled groups, preserving row order within each."""
    if by == "none":
        return {ALL_STOCK_GROUP: inventory_df}

    if by == "month":
        labels = inventory_df["document_date"].apply(_month_label)
    elif by == "category":
        labels = inventory_df["category"].fillna("").replace("", "Uncategorized")
    elif by == "supplier":
        labels = inventory_df["supplier"].fillna("").replace("", "Unknown")
    else:
        raise ValueError(f"Unknown grouping: {by}")

    return {label: group for label, group in inventory_df.groupby(labels, sort=False)}
