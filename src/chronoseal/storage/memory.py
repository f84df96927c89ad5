# src/chronoseal/storage/memory.py

import logging
import threading
import uuid
from typing import Dict, List, Optional

from chronoseal.errors import StorageUnavailableError
from chronoseal.normalize.schema import DocumentRecord
from chronoseal.storage.base import DocumentStore

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """
    Dict-backed document store for development and tests.

    Ids are UUID4 strings. Records live only as long as the process.
    """

    def __init__(self):
        self._records: Dict[str, DocumentRecord] = {}
        self._lock = threading.Lock()
        self._ready = False

    def connect(self) -> None:
        self._ready = True
        logger.info("Using in-memory document store (records are not persisted)")

    def is_ready(self) -> bool:
        return self._ready

    def close(self) -> None:
        self._ready = False

    def _ensure_ready(self):
        if not self._ready:
            raise StorageUnavailableError("In-memory store is not connected")

    def validate_id(self, document_id: str) -> bool:
        if not isinstance(document_id, str):
            return False
        try:
            return str(uuid.UUID(document_id, version=4)) == document_id
        except ValueError:
            return False

    def insert(self, record: DocumentRecord) -> str:
        self._ensure_ready()
        document_id = str(uuid.uuid4())
        with self._lock:
            self._records[document_id] = record.model_copy(update={"id": document_id})
        return document_id

    def find_by_id(self, document_id: str) -> Optional[DocumentRecord]:
        self._ensure_ready()
        with self._lock:
            return self._records.get(document_id)

    def find_by_owner(
        self, owner_id: str, limit: int = 50, skip: int = 0
    ) -> List[DocumentRecord]:
        self._ensure_ready()
        with self._lock:
            owned = [r for r in self._records.values() if r.owner_id == owner_id]
        owned.sort(key=lambda r: r.created_at, reverse=True)
        return owned[skip : skip + limit]

    def count_by_owner(self, owner_id: str) -> int:
        self._ensure_ready()
        with self._lock:
            return sum(1 for r in self._records.values() if r.owner_id == owner_id)

    def delete(self, owner_id: str, document_id: str) -> bool:
        self._ensure_ready()
        with self._lock:
            record = self._records.get(document_id)
            if record is None or record.owner_id != owner_id:
                return False
            del self._records[document_id]
            return True
