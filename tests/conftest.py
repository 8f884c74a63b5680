"""Shared fakes for Project Pulse tests."""
import threading
from typing import Any, Optional

import httplib2
import pytest
from googleapiclient.errors import HttpError

from project_pulse.auth.credential_store import (
    CredentialRecord,
    CredentialStore,
    InMemoryKeyValueStore,
)
from project_pulse.auth.oauth_config import OAuthConfig
from project_pulse.auth.session import CodeExchanger, SessionManager
from project_pulse.client.sheets import TabularSource
from project_pulse.core.clock import Clock
from project_pulse.core.config import DashboardConfig
from project_pulse.dashboard import Dashboard

T0 = 1_700_000_000_000
HOUR_MS = 3_600_000

HEADER = ["Name", "Mgr", "Date", "Budget", "Link", "Progress", "Notes"]
ALPHA_ROWS = [HEADER, ["Alpha", "Bob", "2024-01-01", "1000", "http://x", "45%", "ok"]]


class FakeClock(Clock):
    def __init__(self, now: int = T0) -> None:
        self.now = now

    def now_millis(self) -> int:
        return self.now

    def advance(self, millis: int) -> None:
        self.now += millis


class FakeSource(TabularSource):
    """Sheet stand-in; optionally blocks until ``gate`` is set."""

    def __init__(self, rows: Optional[list] = None) -> None:
        self.rows = rows if rows is not None else ALPHA_ROWS
        self.error: Optional[BaseException] = None
        self.gate: Optional[threading.Event] = None
        self.started = threading.Event()
        self.calls = 0
        self.last_credentials: Any = None

    def read_rows(self, credentials, spreadsheet_id, range_name):
        self.calls += 1
        self.last_credentials = credentials
        self.started.set()
        if self.gate is not None:
            self.gate.wait(5)
        if self.error is not None:
            raise self.error
        return self.rows


class FakeExchanger(CodeExchanger):
    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.codes: list[str] = []
        self.error: Optional[BaseException] = None

    def exchange(self, code: str) -> CredentialRecord:
        self.codes.append(code)
        if self.error is not None:
            raise self.error
        return CredentialRecord(
            access_token=f"token-{code}",
            refresh_token="refresh-1",
            expiry_epoch_millis=self.clock.now_millis() + HOUR_MS,
        )


def make_http_error(status: int, message: str = "error") -> HttpError:
    content = ('{"error": {"code": %d, "message": "%s"}}' % (status, message)).encode()
    return HttpError(httplib2.Response({"status": status}), content)


def make_oauth_config() -> OAuthConfig:
    return OAuthConfig(
        client_id="client-123.apps.googleusercontent.com",
        client_secret="secret",
        redirect_uri="http://localhost:9877/oauth2callback",
    )


def make_dashboard_config(**overrides) -> DashboardConfig:
    values = dict(
        spreadsheet_id="sheet-abc",
        sheet_name="Sheet1",
        range_expression="A1:G100",
        refresh_interval_ms=60_000,
        cache_ttl_ms=60_000,
        fetch_timeout_seconds=5.0,
    )
    values.update(overrides)
    return DashboardConfig(**values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def credential_store(storage, clock) -> CredentialStore:
    return CredentialStore(storage, clock)


@pytest.fixture
def exchanger(clock) -> FakeExchanger:
    return FakeExchanger(clock)


@pytest.fixture
def session(credential_store, clock, exchanger) -> SessionManager:
    return SessionManager(
        make_oauth_config(),
        credential_store,
        clock=clock,
        exchanger=exchanger,
        exchange_timeout_seconds=5.0,
    )


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def dashboard(storage, clock, source, exchanger) -> Dashboard:
    return Dashboard(
        oauth_config=make_oauth_config(),
        config=make_dashboard_config(),
        storage=storage,
        clock=clock,
        source=source,
        exchanger=exchanger,
    )


def sign_in(
    session: SessionManager,
    store: CredentialStore,
    clock: FakeClock,
    refresh_token: Optional[str] = "refresh-1",
) -> CredentialRecord:
    """Put a valid record in storage and restore it."""
    record = CredentialRecord("access-1", refresh_token, clock.now_millis() + HOUR_MS)
    store.save(record)
    assert session.restore_session()
    return record
