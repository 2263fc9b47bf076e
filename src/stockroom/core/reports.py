"""
Tabular reports for export and printing.

Rounding to currency precision happens here, at the output boundary, and
nowhere in the consolidation itself.
"""

from datetime import date
from io import BytesIO
from html import escape
import pandas as pd

from .reconciliation import ReconciliationResult, StockStatus

STATUS_LABELS = {
    StockStatus.OK: "OK",
    StockStatus.SURPLUS: "Surplus",
    StockStatus.SHORTAGE: "Shortage",
}


def format_currency(value: float) -> str:
    """Format an amount as euros with Italian separators: 1.234,56 €"""
    formatted = f"{value:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{formatted} €"


def format_quantity(value: float) -> str:
    """Up to two decimals, trailing zeros dropped: 12 / 2,5 / 0,33"""
    formatted = f"{value:,.2f}".rstrip("0").rstrip(".")
    return formatted.replace(",", "_").replace(".", ",").replace("_", ".")


def _format_date(value) -> str:
    if value is None or pd.isna(value):
        return ""
    return pd.Timestamp(value).strftime("%d/%m/%Y")


def inventory_report(inventory_df: pd.DataFrame) -> pd.DataFrame:
    """Consolidated stock laid out for the stock export."""
    report = pd.DataFrame(
        {
            "SKU": inventory_df["sku"].fillna("").replace("", "N/A"),
            "Description": inventory_df["name"],
            "Category": inventory_df["category"],
            "Last Supplier": inventory_df["supplier"],
            "Stock": inventory_df["quantity"].astype(float).round(2),
            "Unit": inventory_df["unit_of_measure"],
            "Avg Unit Price": inventory_df["unit_price"].astype(float).round(2),
            "Total Value": inventory_df["total_price"].astype(float).round(2),
            "Last Load Date": inventory_df["document_date"].apply(_format_date),
        }
    )
    return report.reset_index(drop=True)


def reconciliation_report(result: ReconciliationResult) -> pd.DataFrame:
    """Reconciliation rows laid out for the count report."""
    rows = [
        {
            "SKU": row.sku or "N/A",
            "Description": row.name,
            "Unit": row.unit_of_measure,
            "Physical Qty": row.physical_quantity,
            "System Qty": row.system_quantity,
            "Difference": row.difference,
            "Status": STATUS_LABELS[row.status],
        }
        for row in result.rows
    ]
    columns = ["SKU", "Description", "Unit", "Physical Qty", "System Qty", "Difference", "Status"]
    return pd.DataFrame(rows, columns=columns)


def to_excel_bytes(report_df: pd.DataFrame, sheet_name: str = "Report") -> bytes:
    """Render a report DataFrame into an .xlsx workbook."""
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        report_df.to_excel(writer, sheet_name=sheet_name[:31], index=False)
    return buffer.getvalue()


def inventory_export_filename(today: date | None = None) -> str:
    today = today or date.today()
    return f"Stock_{today.isoformat()}.xlsx"


def reconciliation_export_filename(result: ReconciliationResult) -> str:
    number = "".join(c if c.isalnum() or c in "-_" else "_" for c in result.document_number)
    return f"Count_Report_{number}_{result.date.isoformat()}.xlsx"


def reconciliation_report_html(result: ReconciliationResult) -> str:
    """Printable page for a reconciliation."""
    summary = result.summary()
    body_rows = []
    for row in result.rows:
        body_rows.append(
            "<tr class='{status}'><td>{sku}</td><td>{name}</td><td>{unit}</td>"
            "<td>{physical}</td><td>{system}</td><td>{diff}</td><td>{label}</td></tr>".format(
                status=row.status.value,
                sku=escape(row.sku or "N/A"),
                name=escape(row.name),
                unit=escape(row.unit_of_measure),
                physical=format_quantity(row.physical_quantity),
                system=format_quantity(row.system_quantity),
                diff=format_quantity(row.difference),
                label=STATUS_LABELS[row.status],
            )
        )

    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Count Report {escape(result.document_number)}</title>
<style>
body {{ font-family: sans-serif; margin: 2em; }}
table {{ border-collapse: collapse; width: 100%; }}
th, td {{ border: 1px solid #ccc; padding: 4px 8px; text-align: left; }}
tr.surplus td {{ background: #fff7e6; }}
tr.shortage td {{ background: #fdecec; }}
</style>
</head>
<body>
<h1>Count Report {escape(result.document_number)}</h1>
<p>Date: {_format_date(result.date)} &middot; Lines: {summary['total']} &middot;
OK: {summary['ok']} &middot; Surplus: {summary['surplus']} &middot; Shortage: {summary['shortage']}</p>
<table>
<thead><tr><th>SKU</th><th>Description</th><th>Unit</th><th>Physical Qty</th><th>System Qty</th><th>Difference</th><th>Status</th></tr></thead>
<tbody>
{chr(10).join(body_rows)}
</tbody>
</table>
</body>
</html>
"""
