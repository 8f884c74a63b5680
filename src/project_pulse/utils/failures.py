"""Failure classification for fetch and auth errors.

Decides whether a failure is retried silently on the next tick, reported to
the caller, or treated as fatal for the current session.
"""
import asyncio
import enum
import logging
import re
from typing import Any, Iterator

from google.auth.exceptions import RefreshError, TransportError

from .errors import (
    DashboardError,
    SessionFatalError,
    extract_message,
    http_status_of,
)

logger = logging.getLogger(__name__)

SESSION_FATAL_STATUSES = frozenset({401, 403})
RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})

# Markers Google puts in error bodies for revoked or expired grants.
REVOKED_GRANT_PATTERN = re.compile(r"permission_denied|invalid_grant")
# Only consulted when no HTTP status is known.
STATUS_TEXT_PATTERN = re.compile(r"\b40[13]\b")


class FailureClass(str, enum.Enum):
    """Outcome of classifying a failure."""

    RETRYABLE = "retryable"
    REPORTABLE = "reportable"
    SESSION_FATAL = "session_fatal"


def _iter_chain(error: Any) -> Iterator[Any]:
    """Yield the error and the causes it wraps."""
    seen = set()
    current = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if isinstance(current, DashboardError):
            current = current.cause
        elif isinstance(current, BaseException):
            current = current.__cause__
        else:
            current = None


def classify(error: Any) -> FailureClass:
    """Classify an error raised by a fetch or auth call.

    A known HTTP status wins over numeric text markers, since error bodies echo
    request URLs that may contain arbitrary digits.

    Args:
        error: Any raised value, wrapped or raw.

    Returns:
        The FailureClass deciding how the caller reacts.
    """
    chain = list(_iter_chain(error))

    if any(isinstance(item, (SessionFatalError, RefreshError)) for item in chain):
        return FailureClass.SESSION_FATAL

    statuses = [status for status in map(http_status_of, chain) if status is not None]
    if any(status in SESSION_FATAL_STATUSES for status in statuses):
        return FailureClass.SESSION_FATAL

    text = " ".join(extract_message(item) for item in chain).lower()
    if REVOKED_GRANT_PATTERN.search(text):
        return FailureClass.SESSION_FATAL

    if statuses:
        if any(status in RETRYABLE_STATUSES for status in statuses):
            return FailureClass.RETRYABLE
        return FailureClass.REPORTABLE

    if STATUS_TEXT_PATTERN.search(text):
        return FailureClass.SESSION_FATAL

    for item in chain:
        if isinstance(item, asyncio.TimeoutError):
            return FailureClass.REPORTABLE
        if isinstance(item, (ConnectionError, TransportError)):
            return FailureClass.RETRYABLE

    return FailureClass.REPORTABLE


class FailureClassifier:
    """Injectable wrapper around the classification policy."""

    def classify(self, error: Any) -> FailureClass:
        result = classify(error)
        logger.debug(f"Classified {type(error).__name__} as {result.value}")
        return result
