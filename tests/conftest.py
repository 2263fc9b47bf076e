"""
Pytest fixtures for stockroom tests.

Provides line item / document factories and an in-memory document store.
"""

from datetime import date
from itertools import count

import pytest

from stockroom.core.models import DocumentType, LineItem, SourceDocument
from stockroom.errors import PersistenceError


@pytest.fixture
def make_item():
    """Factory for line items with sensible defaults."""
    ids = count()

    def _make(
        name="Olio",
        quantity=1.0,
        unit="UD",
        sku="",
        unit_price=None,
        total_price=None,
        doc_type=DocumentType.INVOICE,
        category="General",
    ):
        unit_price = 0.0 if unit_price is None else unit_price
        if total_price is None:
            total_price = quantity * unit_price
        return LineItem(
            id=f"ITEM-{next(ids)}",
            sku=sku,
            name=name,
            quantity=quantity,
            unit_of_measure=unit,
            unit_price=unit_price,
            total_price=total_price,
            category=category,
            doc_type=doc_type,
        )

    return _make


@pytest.fixture
def make_doc():
    """Factory for documents; total amount is the sum of line totals."""
    ids = count()

    def _make(
        items=(),
        doc_type=DocumentType.INVOICE,
        supplier="Acme",
        doc_date=date(2024, 5, 1),
        number=None,
    ):
        n = next(ids)
        doc_id = f"{doc_type.id_prefix}-{n}"
        total = 0.0 if doc_type is DocumentType.PHYSICAL_COUNT else sum(i.total_price for i in items)
        return SourceDocument(
            id=doc_id,
            document_number=number or f"{n}/2024",
            date=doc_date,
            supplier=supplier,
            doc_type=doc_type,
            line_items=tuple(items),
            total_amount=total,
        )

    return _make


class MemoryStore:
    """In-memory document store that can be told to fail."""

    def __init__(self, documents=None):
        self.documents = {d.id: d for d in documents or []}
        self.fail = False
        self.calls = []

    def _check(self, op):
        self.calls.append(op)
        if self.fail:
            raise PersistenceError(f"{op} failed")

    def list_all(self):
        self._check("list_all")
        return list(self.documents.values())

    def upsert(self, doc):
        self._check("upsert")
        self.documents[doc.id] = doc

    def delete(self, doc_id):
        self._check("delete")
        self.documents.pop(doc_id, None)

    def delete_all(self):
        self._check("delete_all")
        self.documents.clear()


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def remote_store():
    return MemoryStore()


@pytest.fixture
def store_factory():
    """Build extra in-memory stores, optionally pre-filled."""
    return MemoryStore
