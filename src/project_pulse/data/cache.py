"""Time-bounded cache of project records with single-flight fetching.

One SyncCache exists per running client. It is the only writer of the
snapshot; consumers read copies of the record list.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..auth.session import SessionManager
from ..client.sheets import TabularSource
from ..core.clock import Clock, SystemClock
from ..core.config import DashboardConfig
from ..utils.errors import (
    DashboardError,
    NormalizedError,
    NotAuthenticatedError,
    RemoteFetchFailedError,
    SessionFatalError,
    extract_message,
    handle_http_error,
    http_status_of,
    normalize_error,
)
from ..utils.failures import FailureClass, FailureClassifier
from .records import ProjectRecord, parse_rows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheSnapshot:
    """Records of one successful fetch and when they were fetched."""

    records: tuple[ProjectRecord, ...]
    fetched_at_epoch_millis: int


class SyncCache:
    """Get-or-fetch cache over the project sheet.

    Guarantees:
        - a fresh snapshot is served without a remote call;
        - at most one remote read is in flight; concurrent callers share its
          value or failure;
        - a failed read leaves the previous snapshot untouched;
        - a read that straddles a sign-out is discarded.
    """

    def __init__(
        self,
        session: SessionManager,
        source: TabularSource,
        config: DashboardConfig,
        clock: Optional[Clock] = None,
        classifier: Optional[FailureClassifier] = None,
    ) -> None:
        self._session = session
        self._source = source
        self._config = config
        self._clock = clock or SystemClock()
        self._classifier = classifier or FailureClassifier()
        self._ttl_millis = config.cache_ttl_ms

        self._snapshot: Optional[CacheSnapshot] = None
        self._inflight: Optional[asyncio.Task] = None

        self.last_failure_classification: Optional[FailureClass] = None
        self.last_error: Optional[NormalizedError] = None

    @property
    def ttl_millis(self) -> int:
        return self._ttl_millis

    @property
    def snapshot(self) -> Optional[CacheSnapshot]:
        return self._snapshot

    @property
    def fetch_in_flight(self) -> bool:
        return self._inflight is not None

    def records(self) -> list[ProjectRecord]:
        """Last known records, possibly stale; empty when cleared."""
        if self._snapshot is None:
            return []
        return list(self._snapshot.records)

    def is_fresh(self) -> bool:
        snapshot = self._snapshot
        if snapshot is None:
            return False
        age = self._clock.now_millis() - snapshot.fetched_at_epoch_millis
        return age < self._ttl_millis

    def clear(self) -> None:
        """Drop the snapshot entirely."""
        if self._snapshot is not None:
            logger.info("Clearing project data cache")
        self._snapshot = None

    async def get_or_fetch(self, force_refresh: bool = False) -> list[ProjectRecord]:
        """Return project records, reading the sheet when needed.

        Args:
            force_refresh: Skip the freshness check.

        Returns:
            The records of the fresh snapshot or of the fetch this call
            joined or started.

        Raises:
            NotAuthenticatedError: If there is no active session, or it ended
                while the read was in flight.
            SessionFatalError: If the grant was revoked or expired; the
                session is invalidated first.
            DashboardError: Any other normalized fetch failure.
        """
        if not force_refresh and self.is_fresh():
            logger.debug("Returning cached project data")
            return self.records()

        task = self._inflight
        if task is None:
            logger.info("Fetching project data from Google Sheets")
            task = asyncio.get_running_loop().create_task(self._fetch())
            task.add_done_callback(self._consume_result)
            self._inflight = task
        else:
            logger.debug("Joining in-flight project data fetch")

        records = await asyncio.shield(task)
        return list(records)

    async def _fetch(self) -> list[ProjectRecord]:
        generation = self._session.generation
        try:
            credentials = self._session.require_active_client()
            rows = await asyncio.wait_for(
                asyncio.to_thread(
                    self._source.read_rows,
                    credentials,
                    self._config.spreadsheet_id,
                    self._config.a1_range,
                ),
                timeout=self._config.fetch_timeout_seconds,
            )
            records = parse_rows(rows)
        except asyncio.TimeoutError as e:
            timeout_error = RemoteFetchFailedError(
                f"Timed out after {self._config.fetch_timeout_seconds:g}s reading project data",
                cause=e,
            )
            raise self._handle_failure(timeout_error, generation) from e
        except Exception as e:
            failure = self._handle_failure(e, generation)
            if failure is e:
                raise
            raise failure from e
        finally:
            self._inflight = None

        if generation != self._session.generation or not self._session.is_authenticated:
            logger.info("Session ended while project data was loading, discarding result")
            error = NotAuthenticatedError("Session ended while project data was loading")
            self.last_failure_classification = FailureClass.REPORTABLE
            self.last_error = normalize_error(error)
            raise error

        self._session.persist_refreshed(credentials)
        self._snapshot = CacheSnapshot(
            records=tuple(records),
            fetched_at_epoch_millis=self._clock.now_millis(),
        )
        self.last_failure_classification = None
        self.last_error = None
        logger.info(f"Parsed and cached {len(records)} projects")
        return records

    def _handle_failure(self, error: Any, generation: int) -> DashboardError:
        classification = self._classifier.classify(error)
        self.last_failure_classification = classification

        if classification == FailureClass.SESSION_FATAL:
            # A stale read must not end a session started after it.
            if generation == self._session.generation:
                self._session.invalidate(f"project fetch failed: {extract_message(error)}")
            result: DashboardError = (
                error if isinstance(error, SessionFatalError) else SessionFatalError(cause=error)
            )
        elif isinstance(error, DashboardError):
            result = error
        elif http_status_of(error) is not None:
            result = handle_http_error(error)
        else:
            result = RemoteFetchFailedError(
                f"Failed to fetch project data: {extract_message(error)}", cause=error
            )

        self.last_error = normalize_error(result)
        logger.error(
            f"Project data fetch failed ({classification.value}): {self.last_error.message}"
        )
        return result

    @staticmethod
    def _consume_result(task: asyncio.Task) -> None:
        # Awaiters may all have been cancelled; mark the exception retrieved.
        if not task.cancelled():
            task.exception()
