"""
The warehouse session: the current document set and the stock derived from it.

Every change is applied in memory first, the consolidated inventory is
recomputed from scratch, and only then is the change written to the local
cache and the cloud. A failed write never rolls the in-memory state back; it
is reported through the returned SyncStatus so the UI can tell the user.
"""

import functools
import logging
import threading
from dataclasses import dataclass
from typing import Callable

import pandas as pd

from .clients.document_store import DocumentStore
from .core.aggregation import consolidate, consolidated_to_frame, stock_documents
from .core.models import ConsolidatedStockEntry, DocumentType, SourceDocument
from .core.reconciliation import ReconciliationEngine, ReconciliationResult
from .errors import PersistenceError

logger = logging.getLogger(__name__)


def _serialized(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


@dataclass(frozen=True)
class SyncStatus:
    """Outcome of persisting a change, for a transient notification."""

    ok: bool
    message: str


class Warehouse:
    """
    Holds every document, newest first, and the inventory consolidated from them.

    Safe to share between threads: loads and changes are serialized.

    Usage:
        warehouse = Warehouse(*build_document_stores(settings))
        warehouse.load()
        warehouse.add_document(doc)
        result = warehouse.reconcile(count_doc.id)
    """

    def __init__(self, cache: DocumentStore, remote: DocumentStore | None = None):
        self.cache = cache
        self.remote = remote
        self._documents: list[SourceDocument] = []
        self._inventory: dict[str, ConsolidatedStockEntry] = {}
        # Serializes loads and changes with their writes
        self._lock = threading.RLock()

    @property
    def remote_enabled(self) -> bool:
        return self.remote is not None

    # --- Reading ---

    @_serialized
    def load(self) -> SyncStatus:
        """
        Load documents: local cache first, then the cloud if it has any.

        A non-empty cloud listing wins and refreshes the cache.
        """
        failures = []
        try:
            documents = self.cache.list_all()
        except PersistenceError as e:
            logger.warning("Local cache unreadable, starting empty: %s", e)
            documents = []
            failures.append("local cache unreadable")

        if self.remote is not None:
            try:
                cloud_documents = self.remote.list_all()
            except PersistenceError as e:
                logger.warning("Cloud fetch failed, using local cache: %s", e)
                failures.append("cloud unavailable, showing local data")
            else:
                if cloud_documents:
                    documents = cloud_documents
                    self._write_cache(lambda: self._replace_cache(documents), failures)

        self._documents = sorted(documents, key=lambda d: d.date, reverse=True)
        self._recompute()

        if failures:
            return SyncStatus(False, f"Loaded {len(self._documents)} documents ({'; '.join(failures)}).")
        logger.info("Loaded %d documents", len(self._documents))
        return SyncStatus(True, f"Loaded {len(self._documents)} documents.")

    def documents(self, doc_type: DocumentType | None = None) -> list[SourceDocument]:
        """Documents newest first, optionally of one type."""
        if doc_type is None:
            return list(self._documents)
        return [d for d in self._documents if d.doc_type is doc_type]

    def get_document(self, doc_id: str) -> SourceDocument | None:
        for doc in self._documents:
            if doc.id == doc_id:
                return doc
        return None

    @property
    def inventory(self) -> dict[str, ConsolidatedStockEntry]:
        return self._inventory

    def inventory_frame(self) -> pd.DataFrame:
        return consolidated_to_frame(self._inventory)

    def reconcile(self, doc_id: str) -> ReconciliationResult:
        """Reconcile a physical count document against current stock."""
        doc = self.get_document(doc_id)
        if doc is None:
            raise KeyError(doc_id)
        if doc.doc_type is not DocumentType.PHYSICAL_COUNT:
            raise ValueError(f"Document {doc_id} is a {doc.doc_type.value}, not a physical count")
        return ReconciliationEngine(self._inventory).reconcile_document(doc)

    # --- Changes ---

    @_serialized
    def add_document(self, doc: SourceDocument) -> SyncStatus:
        self._documents.insert(0, doc)
        self._recompute()
        return self._persist(
            lambda store: store.upsert(doc),
            success=f"{doc.doc_type.label} {doc.document_number} saved.",
        )

    @_serialized
    def update_document(self, doc: SourceDocument) -> SyncStatus:
        """Replace a document by id. Its type cannot change."""
        index = self._index_of(doc.id)
        if self._documents[index].doc_type is not doc.doc_type:
            raise ValueError("A document's type is fixed at creation")
        self._documents[index] = doc
        self._recompute()
        return self._persist(
            lambda store: store.upsert(doc),
            success=f"{doc.doc_type.label} {doc.document_number} updated.",
        )

    @_serialized
    def rename_supplier(self, doc_id: str, supplier: str) -> SyncStatus:
        """Rename a document's supplier. Blank names are ignored."""
        supplier = (supplier or "").strip()
        doc = self._documents[self._index_of(doc_id)]
        if not supplier or supplier == doc.supplier:
            return SyncStatus(True, "Supplier unchanged.")
        return self.update_document(doc.with_supplier(supplier))

    @_serialized
    def delete_document(self, doc_id: str) -> SyncStatus:
        """Delete a document and, with it, every line item it carried."""
        doc = self._documents.pop(self._index_of(doc_id))
        self._recompute()
        return self._persist(
            lambda store: store.delete(doc_id),
            success=f"{doc.doc_type.label} {doc.document_number} removed.",
        )

    @_serialized
    def reset(self) -> SyncStatus:
        """Delete every document, locally and in the cloud."""
        self._documents = []
        self._recompute()
        return self._persist(lambda store: store.delete_all(), success="Warehouse emptied.")

    # --- Internals ---

    def _index_of(self, doc_id: str) -> int:
        for i, doc in enumerate(self._documents):
            if doc.id == doc_id:
                return i
        raise KeyError(doc_id)

    def _recompute(self) -> None:
        self._inventory = consolidate(stock_documents(self._documents))

    def _replace_cache(self, documents: list[SourceDocument]) -> None:
        replace_all = getattr(self.cache, "replace_all", None)
        if replace_all is not None:
            replace_all(documents)
            return
        self.cache.delete_all()
        for doc in reversed(documents):
            self.cache.upsert(doc)

    def _write_cache(self, write: Callable[[], None], failures: list[str]) -> None:
        try:
            write()
        except PersistenceError as e:
            logger.warning("Local cache write failed: %s", e)
            failures.append("local save failed")

    def _persist(self, write: Callable[[DocumentStore], None], success: str) -> SyncStatus:
        failures: list[str] = []
        self._write_cache(lambda: write(self.cache), failures)

        if self.remote is not None:
            try:
                write(self.remote)
            except PersistenceError as e:
                logger.warning("Cloud sync failed: %s", e)
                failures.append("cloud sync failed, local data is kept until the next sync")

        if failures:
            return SyncStatus(False, f"{success[:-1]}, but {'; '.join(failures)}.")
        return SyncStatus(True, success)
