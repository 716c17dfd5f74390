"""Custom exception hierarchy for buildtrend.

All exceptions inherit from BuildTrendError for easy catching at the top level.
Every error carries a stable code and a retryable flag so callers can decide
on retries without matching message strings. Missing history is not an error:
the quality gate models it as an "unknown" status instead.
"""

from typing import Any, Literal

ErrorKind = Literal["storage", "validation", "collection", "report"]


class BuildTrendError(Exception):
    """Base exception for all buildtrend errors."""

    kind: ErrorKind = "storage"
    default_code = "UNKNOWN_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        retryable: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.retryable = retryable
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for machine-readable output."""
        return {
            "type": self.kind,
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }


class StorageError(BuildTrendError):
    """Metrics store errors (connection, permission, corruption, timeout)."""

    kind: ErrorKind = "storage"
    default_code = "STORAGE_ERROR"


class NotFoundError(StorageError):
    """Requested record does not exist in the store."""

    default_code = "NOT_FOUND"


class ValidationError(BuildTrendError):
    """Malformed input or configuration."""

    kind: ErrorKind = "validation"
    default_code = "VALIDATION_ERROR"


class ConfigurationError(ValidationError):
    """Configuration-related errors."""

    default_code = "CONFIG_ERROR"


class CollectionError(BuildTrendError):
    """Upstream metric collector failure."""

    kind: ErrorKind = "collection"
    default_code = "COLLECTION_FAILED"


class ReportError(BuildTrendError):
    """Report rendering or output failure."""

    kind: ErrorKind = "report"
    default_code = "REPORT_FAILED"


def connection_failure(message: str, details: dict[str, Any] | None = None) -> StorageError:
    """Store could not be reached. Retryable."""
    return StorageError(message, code="STORAGE_CONNECTION", retryable=True, details=details)


def timeout(operation: str, details: dict[str, Any] | None = None) -> StorageError:
    """Store operation timed out (e.g. database locked). Retryable."""
    return StorageError(
        f"{operation} timed out",
        code="TIMEOUT",
        retryable=True,
        details=details,
    )


def network_error(message: str, details: dict[str, Any] | None = None) -> StorageError:
    """Transport-level network failure. Retryable."""
    return StorageError(message, code="NETWORK_ERROR", retryable=True, details=details)


def authentication_failure(message: str, details: dict[str, Any] | None = None) -> StorageError:
    """Credentials were rejected."""
    merged = {
        "suggestions": [
            "Verify the credentials provided to the storage transport",
            "Ensure credentials have not expired",
        ],
        **(details or {}),
    }
    return StorageError(message, code="STORAGE_AUTH_FAILED", retryable=False, details=merged)


def permission_denied(message: str, details: dict[str, Any] | None = None) -> StorageError:
    """Store exists but cannot be read or written."""
    merged = {
        "suggestions": [
            "Check file permissions on the database path",
            "Make sure the database is not opened read-only",
        ],
        **(details or {}),
    }
    return StorageError(message, code="STORAGE_PERMISSION", retryable=False, details=merged)


def corrupted_database(message: str, details: dict[str, Any] | None = None) -> StorageError:
    """Database file is not a valid database."""
    merged = {
        "suggestions": [
            "Restore the database from a previous artifact",
            "Delete the file to start a fresh history",
        ],
        **(details or {}),
    }
    return StorageError(message, code="DATABASE_CORRUPTED", retryable=False, details=merged)


def is_retryable(error: BaseException) -> bool:
    """Return whether an error may succeed if the operation is retried."""
    if isinstance(error, BuildTrendError):
        return error.retryable
    return False
