"""Error taxonomy for quotebook — raised errors and carried warning conditions."""

from __future__ import annotations

from typing import Any, Dict, Optional


class QuotebookError(Exception):
    """Base class for every quotebook error."""

    code: Optional[str] = None

    def __init__(self, message: str, code: Optional[str] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


# --------------------------------------------------------------------------- #
# Raised
# --------------------------------------------------------------------------- #

class DataAccessError(QuotebookError):
    """Store unreachable, unreadable or timed out. Retryable."""
    code = "data_access"


class InvalidTimeError(QuotebookError, ValueError):
    """Reminder time outside 0-23 / 0-59."""
    code = "invalid_time"


class PermissionDenied(QuotebookError):
    """Notification authorization refused."""
    code = "permission_denied"


# --------------------------------------------------------------------------- #
# Store errors (codes mirror the relational backend)
# --------------------------------------------------------------------------- #

class StoreError(QuotebookError):
    code = "store_error"


class UniqueViolation(StoreError):
    code = "23505"


class TableMissing(StoreError):
    code = "PGRST205"


class RowNotFound(StoreError):
    code = "PGRST116"


# --------------------------------------------------------------------------- #
# Carried warnings — never raised to callers of the selector
# --------------------------------------------------------------------------- #

class NoQuotesAvailable(QuotebookError):
    code = "no_quotes_available"


class PersistenceSkipped(QuotebookError):
    code = "persistence_skipped"


ERROR_UNKNOWN = "Something went wrong. Please try again."
ERROR_NETWORK = "Network error. Please check your connection."

_MESSAGES_BY_CODE = {
    "23505": "This item already exists",
    "23503": "Invalid reference",
    "PGRST116": "Not found",
    "data_access": ERROR_NETWORK,
    "permission_denied": "Please enable notifications in your device settings to receive daily quotes.",
}


def user_message(error: Any, custom_message: Optional[str] = None) -> str:
    """Map an error (exception, string or None) to user-facing text."""
    code = getattr(error, "code", None)
    if code in _MESSAGES_BY_CODE:
        return _MESSAGES_BY_CODE[code]
    if isinstance(error, QuotebookError) and error.message:
        return error.message
    if isinstance(error, str) and error:
        return error
    return custom_message or ERROR_UNKNOWN
