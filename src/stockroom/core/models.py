"""
Typed records for source documents and the stock they describe.

Line items are fully typed here; loosely-typed extraction payloads are coerced
into these shapes once, at ingestion, and never re-validated by the core.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum


class DocumentType(Enum):
    """Kind of source document. Fixed at creation."""

    INVOICE = "invoice"
    DELIVERY_NOTE = "deliveryNote"
    PHYSICAL_COUNT = "physicalCount"

    @property
    def contributes_to_stock(self) -> bool:
        """Physical counts are compared against stock, never folded into it."""
        return self is not DocumentType.PHYSICAL_COUNT

    @property
    def id_prefix(self) -> str:
        return {
            DocumentType.INVOICE: "INV",
            DocumentType.DELIVERY_NOTE: "DDT",
            DocumentType.PHYSICAL_COUNT: "PC",
        }[self]

    @property
    def label(self) -> str:
        return {
            DocumentType.INVOICE: "Invoice",
            DocumentType.DELIVERY_NOTE: "Delivery Note",
            DocumentType.PHYSICAL_COUNT: "Physical Count",
        }[self]


DEFAULT_CATEGORY = "General"


@dataclass(frozen=True)
class LineItem:
    """A single article on a document."""

    id: str
    name: str
    quantity: float
    unit_of_measure: str
    unit_price: float
    total_price: float
    doc_type: DocumentType
    sku: str = ""
    category: str = DEFAULT_CATEGORY
    document_date: date | None = None
    document_id: str = ""
    document_number: str = ""
    supplier: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "quantity": self.quantity,
            "unit_of_measure": self.unit_of_measure,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
            "category": self.category,
            "document_date": self.document_date.isoformat() if self.document_date else None,
            "document_id": self.document_id,
            "document_number": self.document_number,
            "supplier": self.supplier,
            "doc_type": self.doc_type.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        raw_date = data.get("document_date")
        return cls(
            id=data["id"],
            sku=data.get("sku") or "",
            name=data["name"],
            quantity=float(data.get("quantity") or 0),
            unit_of_measure=data.get("unit_of_measure") or "",
            unit_price=float(data.get("unit_price") or 0),
            total_price=float(data.get("total_price") or 0),
            category=data.get("category") or DEFAULT_CATEGORY,
            document_date=date.fromisoformat(raw_date) if raw_date else None,
            document_id=data.get("document_id") or "",
            document_number=data.get("document_number") or "",
            supplier=data.get("supplier") or "",
            doc_type=DocumentType(data["doc_type"]),
        )


@dataclass(frozen=True)
class SourceDocument:
    """An invoice, delivery note or physical count, with the items it owns."""

    id: str
    document_number: str
    date: date
    supplier: str
    doc_type: DocumentType
    line_items: tuple[LineItem, ...] = ()
    total_amount: float = 0.0
    file_name: str = ""

    def with_supplier(self, supplier: str) -> "SourceDocument":
        """Return a copy renamed to `supplier`, items included."""
        items = tuple(replace(item, supplier=supplier) for item in self.line_items)
        return replace(self, supplier=supplier, line_items=items)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_number": self.document_number,
            "date": self.date.isoformat(),
            "supplier": self.supplier,
            "total_amount": self.total_amount,
            "file_name": self.file_name,
            "type": self.doc_type.value,
            "extracted_products": [item.to_dict() for item in self.line_items],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SourceDocument":
        return cls(
            id=data["id"],
            document_number=data.get("document_number") or "",
            date=date.fromisoformat(data["date"]),
            supplier=data.get("supplier") or "",
            doc_type=DocumentType(data["type"]),
            line_items=tuple(
                LineItem.from_dict(item) for item in data.get("extracted_products") or []
            ),
            total_amount=float(data.get("total_amount") or 0),
            file_name=data.get("file_name") or "",
        )


@dataclass
class ConsolidatedStockEntry:
    """
    Aggregate stock position for one merge key.

    Derived, never persisted. Metadata comes from whichever line item was
    folded in first; only the numeric fields move afterwards.
    """

    key: str
    name: str
    quantity: float
    unit_of_measure: str
    unit_price: float
    total_price: float
    sku: str = ""
    raw_unit: str = ""
    category: str = DEFAULT_CATEGORY
    supplier: str = ""
    document_date: date | None = None
    document_id: str = ""
    document_number: str = ""
    contributing_items: int = field(default=1)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "sku": self.sku,
            "name": self.name,
            "quantity": self.quantity,
            "unit_of_measure": self.unit_of_measure,
            "raw_unit": self.raw_unit,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
            "category": self.category,
            "supplier": self.supplier,
            "document_date": self.document_date,
            "document_id": self.document_id,
            "document_number": self.document_number,
            "contributing_items": self.contributing_items,
        }
