"""Composition root wiring the session, cache and refresh loop together.

One Dashboard is built per running client; every component receives its
collaborators explicitly so tests can substitute fakes.
"""
import logging
from typing import Optional

from .auth.credential_store import CredentialStore, JsonFileKeyValueStore, KeyValueStore
from .auth.oauth_config import OAuthConfig
from .auth.session import CodeExchanger, SessionManager
from .client.sheets import GoogleSheetsSource, TabularSource
from .core.clock import Clock, SystemClock
from .core.config import DashboardConfig, get_credentials_dir
from .data.cache import SyncCache
from .data.records import ProjectRecord
from .data.scheduler import RefreshScheduler
from .data.summary import ProjectSummary, summarize

logger = logging.getLogger(__name__)


class Dashboard:
    """Session, cache and scheduler of one dashboard client."""

    def __init__(
        self,
        oauth_config: Optional[OAuthConfig] = None,
        config: Optional[DashboardConfig] = None,
        storage: Optional[KeyValueStore] = None,
        clock: Optional[Clock] = None,
        source: Optional[TabularSource] = None,
        exchanger: Optional[CodeExchanger] = None,
    ) -> None:
        self.oauth_config = oauth_config or OAuthConfig()
        self.config = config or DashboardConfig()
        self.clock = clock or SystemClock()

        if storage is None:
            storage = JsonFileKeyValueStore(get_credentials_dir())
        self.credential_store = CredentialStore(storage, self.clock)

        self.session = SessionManager(
            self.oauth_config,
            self.credential_store,
            clock=self.clock,
            exchanger=exchanger,
            exchange_timeout_seconds=self.config.fetch_timeout_seconds,
        )
        self.cache = SyncCache(
            self.session,
            source or GoogleSheetsSource(),
            self.config,
            clock=self.clock,
        )
        self.session.add_sign_out_listener(self.cache.clear)
        self.scheduler = RefreshScheduler(
            self.session, self.cache, self.config.refresh_interval_ms
        )

    def configuration_issues(self) -> list[str]:
        return self.config.configuration_issues() + self.oauth_config.configuration_issues()

    async def start(self) -> bool:
        """Restore a stored session and start auto-refresh.

        Returns:
            True if a stored session was restored.
        """
        for issue in self.configuration_issues():
            logger.warning(f"Configuration: {issue}")
        restored = self.session.restore_session()
        self.scheduler.start()
        return restored

    async def stop(self) -> None:
        await self.scheduler.stop()

    def sign_out(self) -> None:
        self.session.sign_out()

    def find_project(self, key_or_id: str) -> Optional[ProjectRecord]:
        """Look up a cached record by stable key, numeric id or exact name."""
        wanted = key_or_id.strip()
        for record in self.cache.records():
            if record.key == wanted.lower() or record.name == wanted:
                return record
        if wanted.isdigit():
            for record in self.cache.records():
                if record.id == int(wanted):
                    return record
        return None

    def summary(self) -> ProjectSummary:
        return summarize(self.cache.records())
