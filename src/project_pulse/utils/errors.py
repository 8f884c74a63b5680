"""Custom exceptions for the Project Pulse dashboard.

This module provides structured error handling with specific exception types
for different failure scenarios. All exceptions inherit from DashboardError.
Arbitrary raised values are turned into a NormalizedError by normalize_error;
nothing downstream of that function inspects raw exceptions.
"""
import enum
import json
from dataclasses import dataclass
from typing import Any, Optional

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."
SESSION_EXPIRED_MESSAGE = "Session expired, please sign in again."


class ErrorKind(str, enum.Enum):
    """Tag carried by every normalized error."""

    NOT_AUTHENTICATED = "not_authenticated"
    AUTH_EXCHANGE_FAILED = "auth_exchange_failed"
    REMOTE_FETCH_FAILED = "remote_fetch_failed"
    SESSION_FATAL = "session_fatal"
    MALFORMED_STORED_CREDENTIAL = "malformed_stored_credential"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


class DashboardError(Exception):
    """Base exception for all Project Pulse errors.

    Attributes:
        message: Human-readable error description.
        cause: The underlying exception or raised value, if any.
    """

    kind = ErrorKind.UNKNOWN

    def __init__(self, message: str, cause: Optional[Any] = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the error message."""
        return self.message


class NotAuthenticatedError(DashboardError):
    """Raised when an operation needs an active session and there is none."""

    kind = ErrorKind.NOT_AUTHENTICATED

    def __init__(self, message: str = "Not authenticated", cause: Optional[Any] = None) -> None:
        super().__init__(message, cause)


class AuthExchangeFailedError(DashboardError):
    """Raised when Google rejects the authorization code exchange."""

    kind = ErrorKind.AUTH_EXCHANGE_FAILED


class RemoteFetchFailedError(DashboardError):
    """Raised when reading the project sheet fails.

    Attributes:
        status: HTTP status of the failed call, when known.
    """

    kind = ErrorKind.REMOTE_FETCH_FAILED

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        cause: Optional[Any] = None,
    ) -> None:
        self.status = status
        super().__init__(message, cause)

    def format_message(self) -> str:
        if self.status:
            return f"{self.message} (HTTP {self.status})"
        return self.message


class SessionFatalError(DashboardError):
    """Raised when the upstream signal says the grant is revoked or expired."""

    kind = ErrorKind.SESSION_FATAL

    def __init__(self, message: str = SESSION_EXPIRED_MESSAGE, cause: Optional[Any] = None) -> None:
        super().__init__(message, cause)


class MalformedStoredCredentialError(DashboardError):
    """Raised internally when persisted credentials cannot be decoded.

    Never surfaced: the credential store treats it as "no credentials".
    """

    kind = ErrorKind.MALFORMED_STORED_CREDENTIAL


class ConfigurationError(DashboardError):
    """Raised when configuration is structurally invalid."""

    kind = ErrorKind.CONFIGURATION


@dataclass(frozen=True)
class NormalizedError:
    """Tagged, human-readable view of any raised value."""

    kind: ErrorKind
    message: str
    cause: Optional[Any] = None


def safe_string(value: Any, fallback: str = "") -> str:
    """Convert any value to a string without raising.

    Falls back to a JSON serialization when ``str()`` fails, then to a
    fixed placeholder.
    """
    if value is None:
        return fallback
    try:
        return str(value)
    except Exception:
        try:
            return json.dumps(value, default=repr)
        except Exception:
            return "[Unstringifiable Object]"


def extract_message(error: Any) -> str:
    """Best-effort extraction of a readable message from an arbitrary value.

    Order: DashboardError.message, then ``error_description``,
    ``description`` or ``message`` attributes or mapping keys, ``str()``,
    JSON, then a placeholder.
    """
    if error is None:
        return UNKNOWN_ERROR_MESSAGE
    if isinstance(error, DashboardError):
        return error.message or UNKNOWN_ERROR_MESSAGE
    if isinstance(error, str):
        return error or UNKNOWN_ERROR_MESSAGE

    for field in ("error_description", "description", "message"):
        if isinstance(error, dict):
            candidate = error.get(field)
        else:
            candidate = getattr(error, field, None)
        if isinstance(candidate, str) and candidate:
            return candidate

    if isinstance(error, BaseException):
        text = safe_string(error)
        if text:
            return text
        return type(error).__name__

    if isinstance(error, (dict, list, tuple)):
        try:
            return json.dumps(error, default=repr)
        except (TypeError, ValueError):
            pass

    text = safe_string(error)
    return text or UNKNOWN_ERROR_MESSAGE


def normalize_error(error: Any, prefix: Optional[str] = None) -> NormalizedError:
    """Turn any raised value into a NormalizedError.

    Args:
        error: The exception or arbitrary raised value.
        prefix: Optional action prefix, e.g. "Refresh failed".

    Returns:
        A NormalizedError whose message is always a non-empty string.
    """
    kind = error.kind if isinstance(error, DashboardError) else ErrorKind.UNKNOWN
    message = extract_message(error)
    if prefix:
        message = f"{prefix}: {message}"
    return NormalizedError(kind=kind, message=message, cause=error)


def http_status_of(error: Any) -> Optional[int]:
    """Return the HTTP status carried by an error, if any."""
    if isinstance(error, RemoteFetchFailedError):
        return error.status
    if isinstance(error, dict):
        candidates = [error.get("status_code"), error.get("status")]
    else:
        candidates = [
            getattr(error, "status_code", None),
            getattr(error, "status", None),
            getattr(getattr(error, "resp", None), "status", None),
        ]
    for candidate in candidates:
        if isinstance(candidate, bool):
            continue
        if isinstance(candidate, int):
            return candidate
        if isinstance(candidate, str) and candidate.isdigit():
            return int(candidate)
    return None


def handle_http_error(error: Any) -> DashboardError:
    """Convert googleapiclient HttpError to a specific exception.

    Args:
        error: The HttpError from googleapiclient.

    Returns:
        An appropriate DashboardError subclass.
    """
    status = http_status_of(error)
    if status is None:
        return RemoteFetchFailedError(f"API error: {extract_message(error)}", cause=error)

    if status == 401:
        return RemoteFetchFailedError(
            "Authentication failed. Please sign in again.", status=status, cause=error
        )
    elif status == 403:
        return RemoteFetchFailedError(
            "Access denied. Check the sheet's sharing settings.", status=status, cause=error
        )
    elif status == 404:
        return RemoteFetchFailedError(
            "Spreadsheet or range not found.", status=status, cause=error
        )
    elif status == 429:
        return RemoteFetchFailedError(
            "API quota exceeded. Please wait a moment and try again.",
            status=status,
            cause=error,
        )
    else:
        return RemoteFetchFailedError(
            f"API error: {extract_message(error)}", status=status, cause=error
        )


# Standard error message format helper
def format_error(action: str, error: Any) -> str:
    """Format an error message consistently.

    Args:
        action: The action that failed (e.g., "Refresh", "Sign in").
        error: The exception or raised value.

    Returns:
        Formatted error string.
    """
    return normalize_error(error, prefix=f"{action} failed").message
