"""
Backend error taxonomy.

Every Backend Gateway call either returns a typed result or raises one of
these. Caches catch them, record ``str(error)`` in their error slot and
decide whether to re-raise.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Machine-readable error codes."""
    BACKEND_UNREACHABLE = "backend_unreachable"
    NOT_FOUND = "not_found"
    VALIDATION_FAILED = "validation_failed"
    UNKNOWN = "unknown"


class BackendError(Exception):
    """Base error for failed backend calls.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class BackendUnreachable(BackendError):
    """Transport or I/O failure talking to the backend."""
    code = ErrorCode.BACKEND_UNREACHABLE


class NotFound(BackendError):
    """A referenced id does not exist."""
    code = ErrorCode.NOT_FOUND

    def __init__(self, kind: str, entity_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"{kind} '{entity_id}' not found",
            details={"kind": kind, "id": entity_id},
        )
        self.kind = kind
        self.entity_id = entity_id


class ValidationFailed(BackendError):
    """The backend rejected the input (duplicate tag name, bad lifecycle edge)."""
    code = ErrorCode.VALIDATION_FAILED


class UnknownBackendError(BackendError):
    """Opaque backend failure."""
    code = ErrorCode.UNKNOWN
