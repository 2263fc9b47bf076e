"""
Physical count reconciliation.

Compares what was physically counted on the shelves against the consolidated
system stock and classifies every counted line as OK, surplus or shortage.
Read-only: neither the count nor the inventory is modified.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Mapping
import pandas as pd

from .models import ConsolidatedStockEntry, LineItem, SourceDocument


class MatchType(Enum):
    """How a counted line was matched to system stock."""

    SKU = "sku"  # Matched on product code
    NAME_UNIT = "name_unit"  # Matched on name and unit
    UNMATCHED = "unmatched"  # Not in system stock


class StockStatus(Enum):
    """Outcome of comparing a physical count with system stock."""

    OK = "ok"
    SURPLUS = "surplus"  # More on the shelf than recorded
    SHORTAGE = "shortage"  # Less on the shelf than recorded

    @classmethod
    def from_difference(cls, difference: float) -> "StockStatus":
        if difference > 0:
            return cls.SURPLUS
        if difference < 0:
            return cls.SHORTAGE
        return cls.OK


@dataclass
class ReconciliationRow:
    """One counted line compared with the system's recorded quantity."""

    sku: str
    name: str
    unit_of_measure: str
    physical_quantity: float
    system_quantity: float
    difference: float
    status: StockStatus
    match_type: MatchType
    system_key: str | None = None

    def to_dict(self) -> dict:
        return {
            "sku": self.sku,
            "name": self.name,
            "unit_of_measure": self.unit_of_measure,
            "physical_quantity": self.physical_quantity,
            "system_quantity": self.system_quantity,
            "difference": self.difference,
            "status": self.status.value,
            "match_type": self.match_type.value,
            "system_key": self.system_key,
        }


@dataclass
class ReconciliationResult:
    """Summary of reconciling one physical count document."""

    document_id: str
    document_number: str
    date: date
    rows: list[ReconciliationRow] = field(default_factory=list)

    @property
    def matched_records(self) -> int:
        return len([r for r in self.rows if r.match_type != MatchType.UNMATCHED])

    @property
    def match_rate(self) -> float:
        if not self.rows:
            return 0
        return self.matched_records / len(self.rows)

    def rows_with_status(self, status: StockStatus) -> list[ReconciliationRow]:
        return [r for r in self.rows if r.status == status]

    def summary(self) -> dict:
        return {
            "document": self.document_number,
            "total": len(self.rows),
            "matched": self.matched_records,
            "unmatched": len(self.rows) - self.matched_records,
            "ok": len(self.rows_with_status(StockStatus.OK)),
            "surplus": len(self.rows_with_status(StockStatus.SURPLUS)),
            "shortage": len(self.rows_with_status(StockStatus.SHORTAGE)),
            "match_rate": f"{self.match_rate:.1%}",
        }

    def to_frame(self) -> pd.DataFrame:
        columns = list(ReconciliationRow.__dataclass_fields__)
        return pd.DataFrame([r.to_dict() for r in self.rows], columns=columns)


class ReconciliationEngine:
    """
    Matches counted lines to system stock entries.

    The lookup is not the merge key: an entry matches a counted
    line if the codes agree (when the line has one) OR the name and unit agree,
    both case-insensitively. Entries are scanned in inventory order and the
    first match wins.

    Usage:
        engine = ReconciliationEngine(consolidate(stock_documents(docs)))
        result = engine.reconcile_document(count_doc)
    """

    def __init__(self, inventory: Mapping[str, ConsolidatedStockEntry]):
        self.inventory = inventory

    def find_match(
        self, item: LineItem
    ) -> tuple[str | None, ConsolidatedStockEntry | None, MatchType]:
        """Return (key, entry, match type) for a counted line."""
        sku = item.sku.strip().lower()
        name = item.name.lower()
        unit = item.unit_of_measure.upper()

        for key, entry in self.inventory.items():
            if sku and entry.sku and entry.sku.strip().lower() == sku:
                return key, entry, MatchType.SKU
            if entry.name.lower() == name and entry.unit_of_measure.upper() == unit:
                return key, entry, MatchType.NAME_UNIT

        return None, None, MatchType.UNMATCHED

    def reconcile_item(self, item: LineItem) -> ReconciliationRow:
        key, entry, match_type = self.find_match(item)
        # Unknown to the system: assume none in stock
        system_quantity = entry.quantity if entry is not None else 0
        difference = item.quantity - system_quantity

        return ReconciliationRow(
            sku=item.sku,
            name=item.name,
            unit_of_measure=item.unit_of_measure,
            physical_quantity=item.quantity,
            system_quantity=system_quantity,
            difference=difference,
            status=StockStatus.from_difference(difference),
            match_type=match_type,
            system_key=key,
        )

    def reconcile(self, physical_doc: SourceDocument) -> list[ReconciliationRow]:
        """One row per counted line, in the count document's order."""
        return [self.reconcile_item(item) for item in physical_doc.line_items]

    def reconcile_document(self, physical_doc: SourceDocument) -> ReconciliationResult:
        return ReconciliationResult(
            document_id=physical_doc.id,
            document_number=physical_doc.document_number,
            date=physical_doc.date,
            rows=self.reconcile(physical_doc),
        )


def reconcile(
    physical_doc: SourceDocument,
    inventory: Mapping[str, ConsolidatedStockEntry],
) -> list[ReconciliationRow]:
    """Reconcile a physical count against consolidated stock."""
    return ReconciliationEngine(inventory).reconcile(physical_doc)
