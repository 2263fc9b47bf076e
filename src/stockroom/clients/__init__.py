# Collaborators at the edge of the core: extraction service, document
# ingestion and persistence. All I/O and all fallibility lives here.

from .extraction import DocumentExtractor, ExtractedDocument, ExtractedProduct
from .ingestion import DocumentIngestor
from .document_store import (
    DocumentStore,
    LocalDocumentStore,
    SupabaseDocumentStore,
    build_document_stores,
)

__all__ = [
    "DocumentExtractor",
    "ExtractedDocument",
    "ExtractedProduct",
    "DocumentIngestor",
    "DocumentStore",
    "LocalDocumentStore",
    "SupabaseDocumentStore",
    "build_document_stores",
]
