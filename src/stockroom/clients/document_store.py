"""
Document persistence: a local JSON cache and a Supabase table.

Both stores speak the same small contract (list all, upsert, delete, delete
all) and raise PersistenceError on any failure. Neither knows anything about
consolidation; they only move whole documents.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Protocol

import requests

from ..config import Settings
from ..core.models import SourceDocument
from ..errors import PersistenceError

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    def list_all(self) -> list[SourceDocument]: ...

    def upsert(self, doc: SourceDocument) -> None: ...

    def delete(self, doc_id: str) -> None: ...

    def delete_all(self) -> None: ...


class LocalDocumentStore:
    """
    Documents kept in a single JSON file, newest first.

    The file is rewritten on every change, which is fine for the few thousand
    line items a warehouse accumulates.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def list_all(self) -> list[SourceDocument]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            return [SourceDocument.from_dict(d) for d in data.get("documents", [])]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise PersistenceError(f"Could not read local cache {self.path}: {e}") from e

    def upsert(self, doc: SourceDocument) -> None:
        documents = self.list_all()
        for i, existing in enumerate(documents):
            if existing.id == doc.id:
                documents[i] = doc
                break
        else:
            documents.insert(0, doc)
        self.replace_all(documents)

    def delete(self, doc_id: str) -> None:
        self.replace_all([d for d in self.list_all() if d.id != doc_id])

    def delete_all(self) -> None:
        self.replace_all([])

    def replace_all(self, documents: Iterable[SourceDocument]) -> None:
        """Overwrite the cache with exactly these documents."""
        payload = {"documents": [d.to_dict() for d in documents]}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            tmp_path.replace(self.path)
        except OSError as e:
            raise PersistenceError(f"Could not write local cache {self.path}: {e}") from e


class SupabaseDocumentStore:
    """
    Documents in a Supabase table, through its PostgREST endpoint.

    Expected table columns: id, document_number, date, supplier, total_amount,
    file_name, type, extracted_products (jsonb).
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        table: str = "documents",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.endpoint = f"{url.rstrip('/')}/rest/v1/{table}"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )

    def _request(self, method: str, action: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(method, self.endpoint, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as e:
            raise PersistenceError(f"Cloud {action} failed: {e}") from e
        return response

    def list_all(self) -> list[SourceDocument]:
        response = self._request(
            "GET", "fetch", params={"select": "*", "order": "date.desc"}
        )
        try:
            return [SourceDocument.from_dict(row) for row in response.json()]
        except (ValueError, KeyError, TypeError) as e:
            raise PersistenceError(f"Cloud fetch returned malformed documents: {e}") from e

    def upsert(self, doc: SourceDocument) -> None:
        self._request(
            "POST",
            "upsert",
            json=doc.to_dict(),
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )
        logger.info("Upserted document %s to cloud", doc.id)

    def delete(self, doc_id: str) -> None:
        self._request("DELETE", "delete", params={"id": f"eq.{doc_id}"})
        logger.info("Deleted document %s from cloud", doc_id)

    def delete_all(self) -> None:
        # PostgREST refuses unfiltered deletes
        self._request("DELETE", "reset", params={"id": "neq.0"})
        logger.info("Deleted all documents from cloud")


def build_document_stores(
    settings: Settings,
) -> tuple[LocalDocumentStore, SupabaseDocumentStore | None]:
    """Return the local cache and, when configured, the cloud store."""
    cache = LocalDocumentStore(settings.cache_path)
    if not settings.remote_enabled:
        logger.info("Cloud sync disabled: SUPABASE_URL / SUPABASE_ANON_KEY not set")
        return cache, None

    remote = SupabaseDocumentStore(
        settings.supabase_url,
        settings.supabase_key,
        table=settings.supabase_table,
        timeout=settings.request_timeout,
    )
    return cache, remote
