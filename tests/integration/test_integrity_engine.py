# tests/integration/test_integrity_engine.py

import base64
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from bson import ObjectId

from chronoseal.core.config import ChronoSealConfig, EngineConfig
from chronoseal.core.engine import IntegrityEngine, build_engine
from chronoseal.errors import (
    EngineNotReadyError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    StorageUnavailableError,
)
from chronoseal.normalize.hash_utils import compute_digest
from chronoseal.normalize.schema import BatchItemError, InputType, TextContent, VerificationResult
from chronoseal.storage.memory import InMemoryDocumentStore
from chronoseal.storage.mongo import MongoDocumentStore

OWNER_A = "user-a"
OWNER_B = "user-b"
MISSING_ID = "0b5e6c7a-1d2e-4f30-8a4b-5c6d7e8f9a0b"


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def engine(store):
    engine = IntegrityEngine(store, config=EngineConfig(max_batch_size=5))
    engine.initialize()
    return engine


class TestStoreAndVerify:
    """Round-trip sealing and verification."""

    def test_round_trip_match(self, engine):
        """Test verifying the stored content yields match = true."""
        receipt = engine.store(OWNER_A, "hello world")
        result = engine.verify(OWNER_A, receipt.id, "hello world")

        assert result.match is True
        assert result.message.startswith("Document integrity verified")
        trail = result.audit_trail
        assert trail.original_digest == receipt.digest
        assert trail.recomputed_digest == receipt.digest
        assert trail.salt == receipt.salt
        assert trail.owner_id == OWNER_A
        assert trail.stored_at == receipt.created_at
        assert trail.verified_at >= trail.stored_at
        assert trail.elapsed_ms >= 0

    def test_tamper_detection(self, engine):
        """Test altered content yields match = false."""
        receipt = engine.store(OWNER_A, "amount: 100")
        result = engine.verify(OWNER_A, receipt.id, "amount: 500")

        assert result.match is False
        assert result.message.startswith("Document has been altered")
        assert result.audit_trail.recomputed_digest != result.audit_trail.original_digest

    def test_store_receipt(self, engine, store):
        """Test the receipt and the persisted record agree."""
        receipt = engine.store(
            OWNER_A, "  contract v2  ", file_name="contract.txt", file_type="text/plain"
        )
        assert receipt.input_type == InputType.TEXT
        assert receipt.digest == compute_digest(b"contract v2", receipt.salt)

        record = store.find_by_id(receipt.id)
        assert record.owner_id == OWNER_A
        assert record.digest == receipt.digest
        assert record.salt == receipt.salt
        assert record.file_name == "contract.txt"

    def test_each_document_gets_fresh_salt(self, engine):
        """Test identical content stored twice gets different salts and digests."""
        first = engine.store(OWNER_A, "same text")
        second = engine.store(OWNER_A, "same text")
        assert first.salt != second.salt
        assert first.digest != second.digest

    def test_verify_uses_stored_salt(self, engine):
        """Test the recomputed digest uses the salt from storage time."""
        receipt = engine.store(OWNER_A, "ledger")
        trail = engine.verify(OWNER_A, receipt.id, "ledger").audit_trail
        assert trail.recomputed_digest == compute_digest(b"ledger", receipt.salt)

    def test_whitespace_differences_are_ignored(self, engine):
        """Test surrounding whitespace is trimmed for plain text."""
        receipt = engine.store(OWNER_A, "signed statement")
        assert engine.verify(OWNER_A, receipt.id, "\n signed statement \t").match

    def test_verify_accepts_content_variant(self, engine):
        """Test a pre-built TextContent is accepted."""
        receipt = engine.store(OWNER_A, TextContent(text="variant"))
        assert engine.verify(OWNER_A, receipt.id, "variant").match

    def test_verify_never_mutates_record(self, engine, store):
        """Test verification leaves the stored record untouched."""
        receipt = engine.store(OWNER_A, "immutable")
        before = store.find_by_id(receipt.id)
        engine.verify(OWNER_A, receipt.id, "tampered")
        assert store.find_by_id(receipt.id) == before


class TestBase64Handling:
    """Base64 and binary content."""

    def test_data_uri_and_bare_base64_match(self, engine):
        """Test data URI and bare Base64 verify against each other."""
        with_prefix = engine.store(OWNER_A, "data:image/png;base64,AAAA")
        bare = engine.store(OWNER_A, "AAAA")

        assert with_prefix.input_type == InputType.BASE64
        assert engine.verify(OWNER_A, with_prefix.id, "AAAA").match
        assert engine.verify(OWNER_A, bare.id, "data:image/png;base64,AAAA").match

    def test_binary_upload(self, engine):
        """Test raw bytes hash as utf8(salt) + bytes."""
        payload = b"\x89PNG\r\n\x1a\n\x00\x00binary"
        receipt = engine.store(OWNER_A, payload, file_name="scan.png", file_type="image/png")

        assert receipt.input_type == InputType.BASE64
        assert receipt.digest == compute_digest(payload, receipt.salt)
        assert engine.verify(OWNER_A, receipt.id, payload).match
        assert not engine.verify(OWNER_A, receipt.id, payload + b"\x00").match

    def test_binary_and_base64_text_differ(self, engine):
        """Test Base64 text is hashed as text, not decoded."""
        payload = b"hello"
        receipt = engine.store(OWNER_A, payload)
        encoded = base64.b64encode(payload).decode("ascii")
        assert not engine.verify(OWNER_A, receipt.id, encoded).match


class TestErrors:
    """Error kinds and ownership isolation."""

    def test_ownership_isolation(self, engine):
        """Test another owner gets Forbidden even with correct content."""
        receipt = engine.store(OWNER_A, "private memo")
        with pytest.raises(ForbiddenError):
            engine.verify(OWNER_B, receipt.id, "private memo")

    def test_not_found(self, engine):
        """Test unknown ids raise NotFound."""
        with pytest.raises(NotFoundError):
            engine.verify(OWNER_A, MISSING_ID, "anything")

    def test_malformed_id(self, engine):
        """Test malformed ids fail before the store is queried."""
        engine.document_store = MagicMock(wraps=engine.document_store)
        with pytest.raises(InvalidInputError, match="Invalid document ID format"):
            engine.verify(OWNER_A, "not-an-id", "anything")
        engine.document_store.find_by_id.assert_not_called()

    def test_empty_input_rejected(self, engine, store):
        """Test empty content is rejected and nothing is stored."""
        with pytest.raises(InvalidInputError):
            engine.store(OWNER_A, "")
        assert store.count_by_owner(OWNER_A) == 0

    @pytest.mark.parametrize("content", [None, "", b""])
    def test_empty_verify_input_rejected(self, engine, content):
        """Test empty content on verify."""
        receipt = engine.store(OWNER_A, "x")
        with pytest.raises(InvalidInputError):
            engine.verify(OWNER_A, receipt.id, content)

    def test_whitespace_only_text_is_allowed(self, engine):
        """Test whitespace-only content is not treated as empty."""
        receipt = engine.store(OWNER_A, "   ")
        assert engine.verify(OWNER_A, receipt.id, "\t").match

    def test_blank_owner_rejected(self, engine):
        """Test a blank owner id."""
        with pytest.raises(InvalidInputError):
            engine.store("  ", "content")

    def test_engine_refuses_before_initialize(self):
        """Test operations fail until initialize() succeeded."""
        engine = IntegrityEngine(InMemoryDocumentStore())
        assert not engine.ready
        with pytest.raises(EngineNotReadyError):
            engine.store(OWNER_A, "content")
        with pytest.raises(StorageUnavailableError):
            engine.verify(OWNER_A, MISSING_ID, "content")

        engine.initialize()
        assert engine.ready
        assert engine.store(OWNER_A, "content").id

    def test_initialize_propagates_storage_failure(self):
        """Test an unreachable store surfaces as StorageUnavailable."""
        store = MagicMock()
        store.connect.side_effect = StorageUnavailableError("MongoDB unavailable")
        engine = IntegrityEngine(store)
        with pytest.raises(StorageUnavailableError):
            engine.initialize()

    def test_store_after_disconnect(self, engine, store):
        """Test a closed store surfaces as StorageUnavailable."""
        store.close()
        with pytest.raises(StorageUnavailableError):
            engine.store(OWNER_A, "content")


class TestBatchVerification:
    """verify_batch independence and limits."""

    def test_batch_independence(self, engine):
        """Test one malformed id does not affect a valid item."""
        receipt = engine.store(OWNER_A, "batch doc")
        result = engine.verify_batch(
            OWNER_A,
            [
                {"id": "bad-id", "content": "whatever"},
                {"id": receipt.id, "content": "batch doc"},
            ],
        )

        assert result.total_documents == 2
        assert result.success_count == 1
        assert result.fail_count == 1
        error, ok = result.results
        assert isinstance(error, BatchItemError)
        assert error.error_kind == "invalid_input"
        assert error.document_id == "bad-id"
        assert isinstance(ok, VerificationResult)
        assert ok.match

    def test_batch_mixed_outcomes_keep_order(self, engine):
        """Test per-item errors, tampering and matches in input order."""
        mine = engine.store(OWNER_A, "mine")
        theirs = engine.store(OWNER_B, "theirs")
        result = engine.verify_batch(
            OWNER_A,
            [
                (mine.id, "mine"),
                (theirs.id, "theirs"),
                (MISSING_ID, "ghost"),
                {"id": mine.id, "text": "changed"},
            ],
        )

        assert result.success_count == 1
        assert result.fail_count == 3
        kinds = [
            r.error_kind if isinstance(r, BatchItemError) else r.match
            for r in result.results
        ]
        assert kinds == [True, "forbidden", "not_found", False]

    def test_batch_limits(self, engine):
        """Test empty and oversized batches are rejected."""
        with pytest.raises(InvalidInputError):
            engine.verify_batch(OWNER_A, [])
        with pytest.raises(InvalidInputError, match="Maximum 5"):
            engine.verify_batch(OWNER_A, [(MISSING_ID, "x")] * 6)

    def test_batch_item_without_content_rejects_batch(self, engine):
        """Test structurally invalid items reject the whole batch."""
        with pytest.raises(InvalidInputError, match='"id" and "content"'):
            engine.verify_batch(OWNER_A, [{"id": MISSING_ID}])

    def test_storage_failure_is_per_item(self, engine, store):
        """Test a store failure on one item leaves its siblings intact."""
        broken = engine.store(OWNER_A, "unreachable")
        healthy = engine.store(OWNER_A, "reachable")
        real_find = store.find_by_id

        def find_by_id(document_id):
            if document_id == broken.id:
                raise StorageUnavailableError("Failed to read document: connection reset")
            return real_find(document_id)

        engine.document_store = MagicMock(wraps=store)
        engine.document_store.find_by_id.side_effect = find_by_id

        result = engine.verify_batch(
            OWNER_A, [(broken.id, "unreachable"), (healthy.id, "reachable")]
        )

        failed, ok = result.results
        assert isinstance(failed, BatchItemError)
        assert failed.error_kind == "storage_unavailable"
        assert ok.match
        assert result.success_count == 1
        assert result.fail_count == 1

    def test_unexpected_error_is_per_item(self, engine, store):
        """Test an unexpected exception fails only its own item."""
        broken = engine.store(OWNER_A, "first")
        healthy = engine.store(OWNER_A, "second")
        real_find = store.find_by_id

        def find_by_id(document_id):
            if document_id == broken.id:
                raise RuntimeError("corrupted record")
            return real_find(document_id)

        engine.document_store = MagicMock(wraps=store)
        engine.document_store.find_by_id.side_effect = find_by_id

        result = engine.verify_batch(OWNER_A, [(broken.id, "first"), (healthy.id, "second")])

        failed, ok = result.results
        assert failed.error_kind == "internal_error"
        assert failed.document_id == broken.id
        assert "corrupted record" not in failed.error
        assert ok.match

    def test_batch_serialization(self, engine):
        """Test the camelCase wire shape."""
        receipt = engine.store(OWNER_A, "wire")
        data = engine.verify_batch(OWNER_A, [(receipt.id, "wire")]).model_dump(
            mode="json", by_alias=True
        )
        assert data["successCount"] == 1
        assert data["results"][0]["auditTrail"]["recomputedDigest"] == receipt.digest


class TestListAndDelete:
    """Owner-scoped listing and deletion."""

    def test_list_hides_digest_and_salt(self, engine):
        """Test listings are owner-filtered and omit secrets."""
        first = engine.store(OWNER_A, "one", file_name="one.txt")
        second = engine.store(OWNER_A, "two")
        engine.store(OWNER_B, "other")

        total, documents = engine.list_documents(OWNER_A)
        assert total == 2
        assert {d.id for d in documents} == {first.id, second.id}
        dumped = documents[0].model_dump()
        assert "digest" not in dumped
        assert "salt" not in dumped

    def test_list_rejects_bad_paging(self, engine):
        """Test limit and skip validation."""
        with pytest.raises(InvalidInputError):
            engine.list_documents(OWNER_A, limit=0)
        with pytest.raises(InvalidInputError):
            engine.list_documents(OWNER_A, skip=-1)

    def test_delete_is_owner_scoped(self, engine):
        """Test another owner cannot delete a document."""
        receipt = engine.store(OWNER_A, "keep")
        with pytest.raises(NotFoundError):
            engine.delete_document(OWNER_B, receipt.id)

        engine.delete_document(OWNER_A, receipt.id)
        with pytest.raises(NotFoundError):
            engine.verify(OWNER_A, receipt.id, "keep")

    def test_delete_malformed_id(self, engine):
        """Test delete validates the id format."""
        with pytest.raises(InvalidInputError):
            engine.delete_document(OWNER_A, "nope")


class TestMongoBackedEngine:
    """Engine running on the MongoDB store with a mocked collection."""

    @pytest.fixture
    def documents(self):
        return {}

    @pytest.fixture
    def mongo_engine(self, documents):
        with patch("chronoseal.storage.mongo.MongoClient") as mock_client_class:
            collection = MagicMock()
            mock_client_class.return_value.__getitem__.return_value.__getitem__.return_value = (
                collection
            )

            def insert_one(doc):
                oid = ObjectId()
                documents[oid] = dict(doc, _id=oid)
                return MagicMock(inserted_id=oid)

            collection.insert_one.side_effect = insert_one
            collection.find_one.side_effect = lambda query: documents.get(query["_id"])

            engine = IntegrityEngine(MongoDocumentStore(uri="mongodb://localhost:27017"))
            engine.initialize()
            yield engine

    def test_round_trip(self, mongo_engine):
        """Test store then verify through ObjectId ids."""
        receipt = mongo_engine.store(OWNER_A, "sealed in mongo")
        assert ObjectId.is_valid(receipt.id)
        assert receipt.created_at.microsecond % 1000 == 0

        result = mongo_engine.verify(OWNER_A, receipt.id, "sealed in mongo")
        assert result.match
        assert result.audit_trail.stored_at == receipt.created_at

    def test_uuid_id_is_malformed(self, mongo_engine):
        """Test ids are validated by the active store's format."""
        with pytest.raises(InvalidInputError, match="Invalid document ID format"):
            mongo_engine.verify(OWNER_A, MISSING_ID, "anything")

    def test_unreadable_record_does_not_abort_batch(self, mongo_engine, documents):
        """Test a record with foreign field names fails only its own item."""
        receipt = mongo_engine.store(OWNER_A, "ok")
        legacy_id = ObjectId()
        documents[legacy_id] = {
            "_id": legacy_id,
            "userId": OWNER_A,
            "hash": "c" * 64,
            "salt": "legacy-salt",
            "createdAt": datetime(2024, 1, 1, tzinfo=timezone.utc),
        }

        result = mongo_engine.verify_batch(
            OWNER_A,
            [(str(legacy_id), "x"), (receipt.id, "ok"), (MISSING_ID, "x")],
        )

        kinds = [
            r.error_kind if isinstance(r, BatchItemError) else r.match
            for r in result.results
        ]
        assert kinds == ["storage_unavailable", True, "invalid_input"]
        assert result.success_count == 1
        assert result.fail_count == 2

    def test_unreadable_record_on_single_verify(self, mongo_engine, documents):
        """Test a single verify surfaces an unreadable record as StorageUnavailable."""
        legacy_id = ObjectId()
        documents[legacy_id] = {"_id": legacy_id, "userId": OWNER_A}
        with pytest.raises(StorageUnavailableError):
            mongo_engine.verify(OWNER_A, str(legacy_id), "x")


class TestConcurrency:
    """Concurrent use of one engine over the in-memory store."""

    def test_parallel_store_and_verify(self, engine, store):
        """Test store/verify from several threads keeps every record intact."""

        def seal_and_check(n):
            text = f"document {n}"
            receipt = engine.store(OWNER_A, text)
            return receipt.id, engine.verify(OWNER_A, receipt.id, text).match

        with ThreadPoolExecutor(max_workers=8) as executor:
            outcomes = list(executor.map(seal_and_check, range(50)))

        assert all(match for _, match in outcomes)
        assert len({document_id for document_id, _ in outcomes}) == 50
        assert store.count_by_owner(OWNER_A) == 50


class TestEngineFactory:
    """build_engine and health."""

    def test_build_engine_from_config(self):
        """Test the engine is wired to the configured store and limits."""
        config = ChronoSealConfig(storage={"backend": "memory"}, engine={"max_batch_size": 7})
        engine = build_engine(config)
        assert isinstance(engine.document_store, InMemoryDocumentStore)
        assert engine.config.max_batch_size == 7
        assert engine.health()["storage"] == "disconnected"

        engine.initialize()
        health = engine.health()
        assert health["status"] == "healthy"
        assert health["storage"] == "connected"


if __name__ == "__main__":
    pytest.main([__file__])
