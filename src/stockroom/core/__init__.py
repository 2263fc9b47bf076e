# Core stock consolidation: pure functions over already-sanitized documents.
# Nothing in here does I/O or raises on bad data.

from .models import (
    DocumentType,
    LineItem,
    SourceDocument,
    ConsolidatedStockEntry,
)
from .parsers import (
    DateParser,
    UnitNormalizer,
    SKUNormalizer,
    ProductNameNormalizer,
    normalize_unit,
    coerce_number,
)
from .merge_keys import build_key
from .aggregation import consolidate, consolidated_to_frame, stock_documents
from .reconciliation import (
    MatchType,
    StockStatus,
    ReconciliationRow,
    ReconciliationResult,
    ReconciliationEngine,
    reconcile,
)

__all__ = [
    "DocumentType",
    "LineItem",
    "SourceDocument",
    "ConsolidatedStockEntry",
    "DateParser",
    "UnitNormalizer",
    "SKUNormalizer",
    "ProductNameNormalizer",
    "normalize_unit",
    "coerce_number",
    "build_key",
    "consolidate",
    "consolidated_to_frame",
    "stock_documents",
    "MatchType",
    "StockStatus",
    "ReconciliationRow",
    "ReconciliationResult",
    "ReconciliationEngine",
    "reconcile",
]
