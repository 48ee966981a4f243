"""Error hierarchy for node operations.

All node errors inherit from DatoNodeError, which carries an error_code
used when a failed item is rendered into its output slot. None of these
errors is retried by the node.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable error codes attached to node errors."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """A required selection is missing (no item type, no matching field, etc.)."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    """An input value is unusable (empty match value, bad upload source, etc.)."""

    REMOTE_ERROR = "REMOTE_ERROR"
    """The DatoCMS API call failed (network, auth, 4xx/5xx)."""

    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"
    """No record matched an upsert criterion and creation is disabled."""

    CONFLICT = "CONFLICT"
    """More than one record matched an upsert criterion."""


class DatoNodeError(Exception):
    """Base exception for all node errors.

    Subclasses set error_code. item_index is filled in by the node when
    the error escapes the per-item loop.
    """

    error_code: ErrorCode = ErrorCode.CONFIGURATION_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        self.item_index: int | None = None
        super().__init__(message)


class ConfigurationError(DatoNodeError):
    """Raised when a required parameter or selection is missing."""

    error_code = ErrorCode.CONFIGURATION_ERROR


class ValidationError(DatoNodeError):
    """Raised when an input value cannot be used."""

    error_code = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class RemoteError(DatoNodeError):
    """Raised when the DatoCMS API call fails.

    The remote message is preserved verbatim in ``message``.
    """

    error_code = ErrorCode.REMOTE_ERROR

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class RecordNotFoundError(DatoNodeError):
    """Raised when an upsert finds nothing and may not create."""

    error_code = ErrorCode.RECORD_NOT_FOUND


class ConflictError(DatoNodeError):
    """Raised when an upsert criterion matches several records."""

    error_code = ErrorCode.CONFLICT

    def __init__(self, message: str, record_ids: list[str] | None = None) -> None:
        super().__init__(message)
        self.record_ids = record_ids or []
