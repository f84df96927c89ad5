# src/chronoseal/normalize/__init__.py

"""
Normalization layer for ChronoSeal.
Converts submitted content into canonical bytes and computes salted digests.
"""

from .schema import (
    AuditTrail,
    BatchItemError,
    BatchVerificationResult,
    BinaryContent,
    DocumentRecord,
    DocumentSummary,
    InputType,
    NormalizedContent,
    StoreReceipt,
    TextContent,
    VerificationResult,
)
from .hash_utils import compute_digest, generate_salt
from .transformer import InputNormalizer, normalize_content, to_content

__all__ = [
    "AuditTrail",
    "BatchItemError",
    "BatchVerificationResult",
    "BinaryContent",
    "DocumentRecord",
    "DocumentSummary",
    "InputType",
    "NormalizedContent",
    "StoreReceipt",
    "TextContent",
    "VerificationResult",
    "compute_digest",
    "generate_salt",
    "InputNormalizer",
    "normalize_content",
    "to_content",
]
