# src/chronoseal/normalize/schema.py
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class InputType(str, Enum):
    TEXT = "text"
    BASE64 = "base64"


class TextContent(BaseModel):
    """Submitted document content that arrived as a string."""

    text: str

    model_config = ConfigDict(frozen=True)


class BinaryContent(BaseModel):
    """Submitted document content that arrived as a raw byte buffer (uploads)."""

    data: bytes

    model_config = ConfigDict(frozen=True)


RawContent = Union[TextContent, BinaryContent]


class NormalizedContent(BaseModel):
    canonical: bytes = Field(..., description="Bytes fed to the digest")
    input_type: InputType = Field(..., description="Classification for audit metadata")

    model_config = ConfigDict(frozen=True)


class _WireModel(BaseModel):
    """Base for models returned to callers; serialized camelCase on the wire."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class DocumentRecord(_WireModel):
    id: Optional[str] = Field(None, description="Identifier assigned by the store")
    owner_id: str = Field(..., description="Authenticated user that sealed the document")
    digest: str = Field(..., pattern=r"^[a-f0-9]{64}$", description="Salted SHA-256")
    salt: str = Field(..., description="Per-document salt")
    input_type: InputType
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    created_at: datetime

    @field_validator("owner_id", "salt")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v


class StoreReceipt(_WireModel):
    id: str
    digest: str
    salt: str
    input_type: InputType
    created_at: datetime


class AuditTrail(_WireModel):
    document_id: str
    owner_id: str
    input_type: InputType
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    original_digest: str
    recomputed_digest: str
    salt: str
    match: bool
    stored_at: datetime
    verified_at: datetime
    elapsed_ms: int = Field(..., description="Milliseconds between storage and verification")


class VerificationResult(_WireModel):
    document_id: str
    match: bool
    message: str
    audit_trail: AuditTrail


class BatchItemError(_WireModel):
    document_id: str
    error: str
    error_kind: str
    match: bool = False


class BatchVerificationResult(_WireModel):
    total_documents: int
    success_count: int
    fail_count: int
    results: List[Union[VerificationResult, BatchItemError]] = Field(default_factory=list)


class DocumentSummary(_WireModel):
    """Listing projection of a DocumentRecord; digest and salt are withheld."""

    id: str
    input_type: InputType
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    created_at: datetime
