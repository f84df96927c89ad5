# src/chronoseal/storage/base.py

from abc import ABC, abstractmethod
from typing import List, Optional

from chronoseal.normalize.schema import DocumentRecord


class DocumentStore(ABC):
    """
    Persistence capability injected into the IntegrityEngine.

    Implementations own id assignment and id format validation. They must
    provide read-after-write visibility: a record returned by insert() is
    visible to the next find_by_id() call.
    """

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @abstractmethod
    def connect(self) -> None:
        """Establish the connection. Raises StorageUnavailableError on failure."""

    @abstractmethod
    def is_ready(self) -> bool:
        """True once connect() has succeeded and until close()."""

    @abstractmethod
    def close(self) -> None:
        ...

    @abstractmethod
    def validate_id(self, document_id: str) -> bool:
        """True if document_id has this store's identifier format."""

    @abstractmethod
    def insert(self, record: DocumentRecord) -> str:
        """Persist a new record atomically and return its assigned id."""

    @abstractmethod
    def find_by_id(self, document_id: str) -> Optional[DocumentRecord]:
        ...

    @abstractmethod
    def find_by_owner(
        self, owner_id: str, limit: int = 50, skip: int = 0
    ) -> List[DocumentRecord]:
        """Records owned by owner_id, newest first."""

    @abstractmethod
    def count_by_owner(self, owner_id: str) -> int:
        ...

    @abstractmethod
    def delete(self, owner_id: str, document_id: str) -> bool:
        """Delete the record only if owner_id owns it. Returns True if deleted."""
