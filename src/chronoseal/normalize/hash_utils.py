# src/chronoseal/normalize/hash_utils.py

import hashlib
import uuid
from typing import Union


def generate_salt() -> str:
    """
    Generate a fresh per-document salt.

    Returns:
        UUID4 string (122 random bits from the OS entropy source).
    """
    return str(uuid.uuid4())


def compute_digest(content: Union[bytes, str], salt: str) -> str:
    """
    Compute the salted SHA-256 digest of canonical document content.

    The salt is UTF-8 encoded and prepended to the content before hashing.

    Args:
        content: Canonical bytes, or a string which is encoded as UTF-8.
        salt: Salt string stored alongside the digest.

    Returns:
        Hexadecimal SHA-256 hash string (64 lowercase chars).

    Examples:
        >>> compute_digest(b"hello", "")
        '2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'

        >>> compute_digest("llo", "he")
        '2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    elif isinstance(content, bytearray):
        content = bytes(content)
    elif not isinstance(content, bytes):
        raise TypeError("Content must be bytes or str")
    if not isinstance(salt, str):
        raise TypeError("Salt must be str")

    sha256_hash = hashlib.sha256()
    sha256_hash.update(salt.encode("utf-8"))
    sha256_hash.update(content)
    return sha256_hash.hexdigest()


def digests_match(recomputed: str, original: str) -> bool:
    """Exact comparison of two lowercase hex digests."""
    return recomputed == original
