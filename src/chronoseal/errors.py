# src/chronoseal/errors.py

"""
Error kinds raised by the integrity engine and its document stores.

Every error carries a short ``kind`` string used in per-item batch results
and CLI output.
"""


class IntegrityError(Exception):
    """Base class for all ChronoSeal operation errors."""

    kind = "integrity_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(IntegrityError, ValueError):
    """Missing or empty content, blank owner, malformed id or bad batch."""

    kind = "invalid_input"


class NotFoundError(IntegrityError):
    kind = "not_found"


class ForbiddenError(IntegrityError):
    """The record exists but belongs to another owner."""

    kind = "forbidden"


class StorageUnavailableError(IntegrityError):
    kind = "storage_unavailable"


class EngineNotReadyError(StorageUnavailableError):
    """Raised when the engine is used before its store reported ready."""

    kind = "engine_not_ready"
