# src/chronoseal/core/engine.py

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from chronoseal.core.config import ChronoSealConfig, EngineConfig, build_store
from chronoseal.errors import (
    EngineNotReadyError,
    ForbiddenError,
    IntegrityError,
    InvalidInputError,
    NotFoundError,
)
from chronoseal.normalize.hash_utils import compute_digest, digests_match, generate_salt
from chronoseal.normalize.schema import (
    AuditTrail,
    BatchItemError,
    BatchVerificationResult,
    DocumentRecord,
    DocumentSummary,
    StoreReceipt,
    VerificationResult,
)
from chronoseal.normalize.transformer import InputNormalizer, to_content
from chronoseal.storage.base import DocumentStore

logger = logging.getLogger(__name__)

MATCH_MESSAGE = "Document integrity verified. No tampering detected."
MISMATCH_MESSAGE = "Document has been altered. Tampering detected."

BatchItem = Union[Mapping[str, Any], Tuple[str, Any]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _utcnow_ms() -> datetime:
    # MongoDB keeps datetimes to the millisecond
    now = _utcnow()
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class IntegrityEngine:
    """
    Salted-hash integrity engine.

    Seals submitted documents (fresh salt + SHA-256 digest, persisted per
    owner) and later recomputes the digest with the stored salt to detect
    tampering. Persistence goes through the injected DocumentStore; the
    engine refuses every operation until initialize() has seen the store
    report ready.
    """

    def __init__(
        self,
        store: DocumentStore,
        config: Optional[EngineConfig] = None,
        normalizer: Optional[InputNormalizer] = None,
    ):
        """
        Initialize the engine.

        Args:
            store: Document store used for all reads and writes
            config: Engine limits (batch cap, default list size)
            normalizer: Input normalizer shared by store and verify
        """
        self.document_store = store
        self.config = config or EngineConfig()
        self.normalizer = normalizer or InputNormalizer()

    def initialize(self) -> None:
        """
        Connect the document store. Must be called once at process startup.

        Raises:
            StorageUnavailableError: If the store cannot be reached.
        """
        self.document_store.connect()
        if not self.document_store.is_ready():
            raise EngineNotReadyError("Document store did not report ready")
        logger.info(f"Integrity engine ready ({type(self.document_store).__name__})")

    @property
    def ready(self) -> bool:
        return self.document_store.is_ready()

    def _ensure_ready(self):
        if not self.document_store.is_ready():
            raise EngineNotReadyError(
                "Integrity engine is not initialized; call initialize() first"
            )

    def _require_owner(self, owner_id: str):
        if not isinstance(owner_id, str) or not owner_id.strip():
            raise InvalidInputError("Authenticated owner id is required.")

    def _require_valid_id(self, document_id: str):
        if not document_id or not self.document_store.validate_id(document_id):
            raise InvalidInputError("Invalid document ID format.")

    def store(
        self,
        owner_id: str,
        raw_content: Any,
        file_name: Optional[str] = None,
        file_type: Optional[str] = None,
    ) -> StoreReceipt:
        """
        Seal a document: normalize, salt, hash and persist.

        Args:
            owner_id: Authenticated user id
            raw_content: Text, Base64 / data URI string, or raw bytes
            file_name: Optional original file name
            file_type: Optional MIME type

        Returns:
            StoreReceipt with the assigned id, digest and salt.
        """
        self._ensure_ready()
        self._require_owner(owner_id)
        content = to_content(raw_content)

        normalized = self.normalizer.normalize(content)
        salt = generate_salt()
        digest = compute_digest(normalized.canonical, salt)

        record = DocumentRecord(
            owner_id=owner_id,
            digest=digest,
            salt=salt,
            input_type=normalized.input_type,
            file_name=file_name,
            file_type=file_type,
            created_at=_utcnow_ms(),
        )
        document_id = self.document_store.insert(record)

        logger.info(
            f"Stored {normalized.input_type.value} document {document_id} "
            f"for owner {owner_id} (digest {digest[:12]}...)"
        )
        return StoreReceipt(
            id=document_id,
            digest=digest,
            salt=salt,
            input_type=normalized.input_type,
            created_at=record.created_at,
        )

    def verify(self, owner_id: str, document_id: str, raw_content: Any) -> VerificationResult:
        """
        Recompute a sealed document's digest and compare it to the stored one.

        Args:
            owner_id: Authenticated user id
            document_id: Id returned by store()
            raw_content: Resubmitted content

        Returns:
            VerificationResult with match verdict and audit trail.

        Raises:
            InvalidInputError: Empty content or malformed id
            NotFoundError: No record with this id
            ForbiddenError: Record belongs to another owner
        """
        self._ensure_ready()
        self._require_owner(owner_id)
        content = to_content(raw_content)
        self._require_valid_id(document_id)

        record = self.document_store.find_by_id(document_id)
        if record is None:
            raise NotFoundError(f"Document {document_id} not found.")
        if record.owner_id != owner_id:
            raise ForbiddenError("Access to this document is denied.")

        normalized = self.normalizer.normalize(content)
        recomputed = compute_digest(normalized.canonical, record.salt)
        match = digests_match(recomputed, record.digest)

        stored_at = _as_utc(record.created_at)
        verified_at = _utcnow()
        audit_trail = AuditTrail(
            document_id=document_id,
            owner_id=owner_id,
            input_type=record.input_type,
            file_name=record.file_name,
            file_type=record.file_type,
            original_digest=record.digest,
            recomputed_digest=recomputed,
            salt=record.salt,
            match=match,
            stored_at=stored_at,
            verified_at=verified_at,
            elapsed_ms=int((verified_at - stored_at).total_seconds() * 1000),
        )

        if match:
            logger.info(f"Document {document_id} verified for owner {owner_id}")
        else:
            logger.warning(f"Tampering detected on document {document_id} (owner {owner_id})")

        return VerificationResult(
            document_id=document_id,
            match=match,
            message=MATCH_MESSAGE if match else MISMATCH_MESSAGE,
            audit_trail=audit_trail,
        )

    def _parse_batch_item(self, item: BatchItem) -> Tuple[str, Any]:
        if isinstance(item, Mapping):
            document_id = item.get("id") or item.get("document_id")
            content = item.get("content")
            if content is None:
                content = item.get("text")
        elif isinstance(item, (tuple, list)) and len(item) == 2:
            document_id, content = item
        else:
            raise InvalidInputError('Each document must have "id" and "content" properties.')

        if not document_id or content is None or content == "" or content == b"":
            raise InvalidInputError('Each document must have "id" and "content" properties.')
        return str(document_id), content

    def verify_batch(self, owner_id: str, items: Sequence[BatchItem]) -> BatchVerificationResult:
        """
        Verify several documents independently.

        Per-item failures (malformed id, missing or foreign record, storage
        or unexpected errors) fail only their own item. Results follow
        input order.

        Args:
            owner_id: Authenticated user id
            items: {"id": ..., "content": ...} mappings or (id, content) pairs

        Returns:
            BatchVerificationResult with per-item results and counts.
        """
        self._ensure_ready()
        self._require_owner(owner_id)
        if not items:
            raise InvalidInputError("Documents array is required and must not be empty.")
        if len(items) > self.config.max_batch_size:
            raise InvalidInputError(
                f"Maximum {self.config.max_batch_size} documents allowed per batch."
            )
        parsed = [self._parse_batch_item(item) for item in items]

        results: List[Union[VerificationResult, BatchItemError]] = []
        success_count = 0
        fail_count = 0
        for document_id, content in parsed:
            try:
                result = self.verify(owner_id, document_id, content)
            except IntegrityError as e:
                logger.warning(f"Batch item {document_id} failed: {e.message}")
                results.append(
                    BatchItemError(document_id=document_id, error=e.message, error_kind=e.kind)
                )
                fail_count += 1
                continue
            except Exception as e:
                logger.error(f"Batch item {document_id} failed unexpectedly: {e}")
                results.append(
                    BatchItemError(
                        document_id=document_id,
                        error="Internal error while verifying document.",
                        error_kind="internal_error",
                    )
                )
                fail_count += 1
                continue

            results.append(result)
            if result.match:
                success_count += 1
            else:
                fail_count += 1

        logger.info(
            f"Batch verification completed. {success_count} verified, "
            f"{fail_count} failed/tampered."
        )
        return BatchVerificationResult(
            total_documents=len(parsed),
            success_count=success_count,
            fail_count=fail_count,
            results=results,
        )

    def list_documents(
        self, owner_id: str, limit: Optional[int] = None, skip: int = 0
    ) -> Tuple[int, List[DocumentSummary]]:
        """
        List an owner's documents, newest first, without digests or salts.

        Returns:
            (total number of owned documents, page of summaries)
        """
        self._ensure_ready()
        self._require_owner(owner_id)
        if limit is None:
            limit = self.config.default_list_limit
        if limit < 1 or skip < 0:
            raise InvalidInputError("limit must be positive and skip non-negative.")

        records = self.document_store.find_by_owner(owner_id, limit=limit, skip=skip)
        total = self.document_store.count_by_owner(owner_id)
        summaries = [
            DocumentSummary(
                id=r.id,
                input_type=r.input_type,
                file_name=r.file_name,
                file_type=r.file_type,
                created_at=r.created_at,
            )
            for r in records
        ]
        return total, summaries

    def delete_document(self, owner_id: str, document_id: str) -> None:
        """
        Delete one of the owner's documents.

        Raises:
            InvalidInputError: Malformed id
            NotFoundError: Nothing owned by owner_id under this id
        """
        self._ensure_ready()
        self._require_owner(owner_id)
        self._require_valid_id(document_id)
        if not self.document_store.delete(owner_id, document_id):
            raise NotFoundError("Document not found or access denied.")
        logger.info(f"Deleted document {document_id} for owner {owner_id}")

    def health(self) -> Dict[str, Any]:
        """Service health summary."""
        ready = self.document_store.is_ready()
        return {
            "status": "healthy" if ready else "degraded",
            "service": "ChronoSeal Integrity Engine",
            "storage": "connected" if ready else "disconnected",
            "timestamp": _utcnow().isoformat(),
        }


def build_engine(config: ChronoSealConfig) -> IntegrityEngine:
    """Create an (uninitialized) engine wired to the configured store."""
    return IntegrityEngine(build_store(config), config=config.engine)
