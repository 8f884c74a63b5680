"""Periodic background refresh of the project cache."""
import asyncio
import logging
from typing import Optional

from ..auth.session import SessionManager
from ..utils.errors import DashboardError, SessionFatalError, normalize_error
from ..utils.failures import FailureClass, FailureClassifier
from .cache import SyncCache
from .records import ProjectRecord

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Timer-driven refresh that only runs while the session is authenticated.

    Scheduled ticks swallow retryable and reportable failures; the next tick
    is the retry. Session-fatal failures end the session. Manual refreshes
    share the cache's single-flight guard and propagate failures.
    """

    def __init__(
        self,
        session: SessionManager,
        cache: SyncCache,
        interval_ms: int,
        classifier: Optional[FailureClassifier] = None,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError("Refresh interval must be positive")
        self._session = session
        self._cache = cache
        self._classifier = classifier or FailureClassifier()
        self._interval_seconds = interval_ms / 1000
        self._task: Optional[asyncio.Task] = None

        self.last_failure_classification: Optional[FailureClass] = None
        self.tick_count = 0

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking on the running event loop. No-op if already started."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Auto-refresh started, every {self._interval_seconds:g}s")

    async def stop(self) -> None:
        """Cancel the timer. An in-flight fetch is left to complete."""
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Auto-refresh stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            await self.tick()

    async def tick(self) -> Optional[FailureClass]:
        """Run one scheduled refresh.

        Returns:
            The classification of the failure, or None on success or when
            skipped for lack of a session.
        """
        self.tick_count += 1
        if not self._session.is_authenticated:
            logger.debug("Skipping auto-refresh, not authenticated")
            return None

        logger.info("Auto-refreshing projects")
        generation = self._session.generation
        try:
            await self._cache.get_or_fetch(force_refresh=True)
        except Exception as e:
            if isinstance(e, SessionFatalError):
                classification = FailureClass.SESSION_FATAL
            elif isinstance(e, DashboardError):
                classification = self._cache.last_failure_classification or FailureClass.REPORTABLE
            else:
                classification = self._classifier.classify(e)
                logger.error(f"Unexpected error during auto-refresh: {e}", exc_info=True)
            self.last_failure_classification = classification
            message = normalize_error(e, prefix="Auto-refresh failed").message
            if classification == FailureClass.SESSION_FATAL:
                logger.warning(message)
                if self._session.generation == generation:
                    self._session.invalidate("auto-refresh hit a session-fatal failure")
            else:
                logger.warning(f"{message} (will retry in {self._interval_seconds:g}s)")
            return classification

        self.last_failure_classification = None
        return None

    async def refresh_now(self) -> list[ProjectRecord]:
        """Manual refresh; failures propagate to the caller.

        Raises:
            DashboardError: Normalized failure of the refresh.
        """
        logger.info("Manual refresh initiated")
        return await self._cache.get_or_fetch(force_refresh=True)
