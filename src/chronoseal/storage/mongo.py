# src/chronoseal/storage/mongo.py

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import BSONError
from pydantic import ValidationError
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError, ServerSelectionTimeoutError

from chronoseal.errors import StorageUnavailableError
from chronoseal.normalize.schema import DocumentRecord
from chronoseal.storage.base import DocumentStore

logger = logging.getLogger(__name__)


class MongoDocumentStore(DocumentStore):
    """
    MongoDB document store.

    One collection holds every sealed document; ids are the 24-hex ObjectId
    assigned by MongoDB on insert.
    """

    def __init__(
        self,
        uri: str,
        database: str = "ChronoSealDB",
        collection: str = "documents",
        server_selection_timeout_ms: int = 5000,
    ):
        """
        Initialize store settings. No connection is made until connect().

        Args:
            uri: MongoDB URI (e.g., "mongodb://localhost:27017")
            database: Database name
            collection: Collection holding document records
            server_selection_timeout_ms: Fail-fast timeout for unreachable servers
        """
        self.uri = uri
        self.database = database
        self.collection_name = collection
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self._client: Optional[MongoClient] = None
        self._collection: Optional[Collection] = None

    def connect(self) -> None:
        """Connect, verify the server answers, and create indexes."""
        if self._client is not None:
            return
        client = None
        try:
            client = MongoClient(
                self.uri,
                serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                tz_aware=True,
            )
            client.admin.command("ping")
            collection = client[self.database][self.collection_name]
            collection.create_index([("owner_id", ASCENDING), ("created_at", DESCENDING)])
            collection.create_index([("created_at", DESCENDING)])
        except (ServerSelectionTimeoutError, PyMongoError) as e:
            logger.error(f"Failed to connect to MongoDB at {self.uri}: {e}")
            if client is not None:
                client.close()
            raise StorageUnavailableError(f"MongoDB unavailable: {e}") from e

        self._client = client
        self._collection = collection
        logger.info(f"Connected to MongoDB: {self.database}.{self.collection_name}")

    def is_ready(self) -> bool:
        return self._collection is not None

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._collection = None

    @property
    def collection(self) -> Collection:
        if self._collection is None:
            raise StorageUnavailableError("MongoDB store is not connected")
        return self._collection

    def validate_id(self, document_id: str) -> bool:
        return isinstance(document_id, str) and ObjectId.is_valid(document_id)

    def _record_to_doc(self, record: DocumentRecord) -> Dict[str, Any]:
        doc = record.model_dump(exclude={"id"})
        doc["input_type"] = record.input_type.value
        return doc

    def _doc_to_record(self, doc: Dict[str, Any]) -> DocumentRecord:
        doc = dict(doc)
        document_id = str(doc.pop("_id", None))
        try:
            return DocumentRecord(id=document_id, **doc)
        except (ValidationError, TypeError) as e:
            logger.error(f"Stored document {document_id} is not a valid record: {e}")
            raise StorageUnavailableError(
                f"Stored document {document_id} is unreadable"
            ) from e

    def insert(self, record: DocumentRecord) -> str:
        try:
            result = self.collection.insert_one(self._record_to_doc(record))
        except PyMongoError as e:
            logger.error(f"Failed to insert document for owner {record.owner_id}: {e}")
            raise StorageUnavailableError(f"Failed to store document: {e}") from e
        return str(result.inserted_id)

    def find_by_id(self, document_id: str) -> Optional[DocumentRecord]:
        try:
            doc = self.collection.find_one({"_id": ObjectId(document_id)})
        except (PyMongoError, BSONError) as e:
            logger.error(f"Failed to read document {document_id}: {e}")
            raise StorageUnavailableError(f"Failed to read document: {e}") from e
        return self._doc_to_record(doc) if doc else None

    def find_by_owner(
        self, owner_id: str, limit: int = 50, skip: int = 0
    ) -> List[DocumentRecord]:
        try:
            cursor = (
                self.collection.find({"owner_id": owner_id})
                .sort("created_at", DESCENDING)
                .skip(skip)
                .limit(limit)
            )
            return [self._doc_to_record(doc) for doc in cursor]
        except (PyMongoError, BSONError) as e:
            logger.error(f"Failed to list documents for owner {owner_id}: {e}")
            raise StorageUnavailableError(f"Failed to list documents: {e}") from e

    def count_by_owner(self, owner_id: str) -> int:
        try:
            return self.collection.count_documents({"owner_id": owner_id})
        except PyMongoError as e:
            raise StorageUnavailableError(f"Failed to count documents: {e}") from e

    def delete(self, owner_id: str, document_id: str) -> bool:
        try:
            result = self.collection.delete_one(
                {"_id": ObjectId(document_id), "owner_id": owner_id}
            )
        except PyMongoError as e:
            logger.error(f"Failed to delete document {document_id}: {e}")
            raise StorageUnavailableError(f"Failed to delete document: {e}") from e
        return result.deleted_count > 0
