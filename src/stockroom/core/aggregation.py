"""
Inventory consolidation.

Folds every invoice and delivery-note line item into one stock position per
merge key. The whole table is recomputed from the current document set on
every change; there is no incremental update path.
"""

import logging
from typing import Iterable, Mapping

import pandas as pd

from .merge_keys import build_key
from .models import ConsolidatedStockEntry, DocumentType, LineItem, SourceDocument
from .parsers import normalize_unit

logger = logging.getLogger(__name__)

INVENTORY_COLUMNS = [
    "key",
    "sku",
    "name",
    "quantity",
    "unit_of_measure",
    "raw_unit",
    "unit_price",
    "total_price",
    "category",
    "supplier",
    "document_date",
    "document_id",
    "document_number",
    "contributing_items",
]


def stock_documents(documents: Iterable[SourceDocument]) -> list[SourceDocument]:
    """
    Order documents the way consolidation expects them.

    Invoices first, then delivery notes, each keeping the order it was given
    in (newest first for the warehouse). Physical counts are dropped.
    """
    documents = list(documents)
    invoices = [d for d in documents if d.doc_type is DocumentType.INVOICE]
    delivery_notes = [d for d in documents if d.doc_type is DocumentType.DELIVERY_NOTE]
    return invoices + delivery_notes


def _seed_entry(key: str, item: LineItem, doc: SourceDocument) -> ConsolidatedStockEntry:
    unit_price = item.total_price / item.quantity if item.quantity > 0 else item.unit_price
    return ConsolidatedStockEntry(
        key=key,
        sku=item.sku,
        name=item.name,
        quantity=item.quantity,
        unit_of_measure=normalize_unit(item.unit_of_measure),
        raw_unit=item.unit_of_measure,
        unit_price=unit_price,
        total_price=item.total_price,
        category=item.category,
        supplier=doc.supplier,
        document_date=doc.date,
        document_id=doc.id,
        document_number=doc.document_number,
    )


def _fold(entry: ConsolidatedStockEntry, item: LineItem) -> None:
    entry.quantity += item.quantity
    entry.total_price += item.total_price
    entry.contributing_items += 1
    # Zero or negative stock keeps the last good average price
    if entry.quantity > 0:
        entry.unit_price = entry.total_price / entry.quantity


def consolidate(
    documents: Iterable[SourceDocument],
) -> dict[str, ConsolidatedStockEntry]:
    """
    Consolidate documents into stock entries keyed by merge key.

    Documents are processed in the order given. The first line item seen for
    a key seeds the entry's metadata; later ones only move quantity, total
    price and the average unit price. Physical counts are skipped.

    Iteration order of the result follows key seeding order.
    """
    entries: dict[str, ConsolidatedStockEntry] = {}
    item_count = 0

    for doc in documents:
        if not doc.doc_type.contributes_to_stock:
            continue
        for item in doc.line_items:
            item_count += 1
            key = build_key(item)
            entry = entries.get(key)
            if entry is None:
                entries[key] = _seed_entry(key, item, doc)
            else:
                _fold(entry, item)

    logger.debug("Consolidated %d line items into %d stock entries", item_count, len(entries))
    return entries


def consolidated_to_frame(
    entries: Mapping[str, ConsolidatedStockEntry],
) -> pd.DataFrame:
    """Project stock entries into a DataFrame, one row per entry, in entry order."""
    if not entries:
        return pd.DataFrame(columns=INVENTORY_COLUMNS)
    return pd.DataFrame([entry.to_dict() for entry in entries.values()], columns=INVENTORY_COLUMNS)
