"""Unit tests for the background refresh scheduler."""
import asyncio
import threading

import pytest

from project_pulse.auth.session import SessionState
from project_pulse.data.cache import SyncCache
from project_pulse.data.scheduler import RefreshScheduler
from project_pulse.utils.errors import NotAuthenticatedError, RemoteFetchFailedError
from project_pulse.utils.failures import FailureClass

from conftest import make_dashboard_config, make_http_error, sign_in


@pytest.fixture
def cache(session, source, clock):
    cache = SyncCache(session, source, make_dashboard_config(), clock=clock)
    session.add_sign_out_listener(cache.clear)
    return cache


@pytest.fixture
def scheduler(session, cache):
    return RefreshScheduler(session, cache, interval_ms=60_000)


class TestTick:
    """Tests for a single scheduled refresh."""

    @pytest.mark.asyncio
    async def test_skipped_when_unauthenticated(self, scheduler, source):
        assert await scheduler.tick() is None
        assert source.calls == 0
        assert scheduler.tick_count == 1

    @pytest.mark.asyncio
    async def test_success_updates_cache(self, scheduler, session, credential_store, clock, cache, source):
        sign_in(session, credential_store, clock)

        assert await scheduler.tick() is None

        assert source.calls == 1
        assert [r.name for r in cache.records()] == ["Alpha"]

    @pytest.mark.asyncio
    async def test_tick_ignores_freshness(self, scheduler, session, credential_store, clock, cache, source):
        sign_in(session, credential_store, clock)
        await cache.get_or_fetch()

        await scheduler.tick()

        assert source.calls == 2

    @pytest.mark.asyncio
    async def test_retryable_failure_is_swallowed(self, scheduler, session, credential_store, clock, source):
        sign_in(session, credential_store, clock)
        source.error = make_http_error(503, "unavailable")

        assert await scheduler.tick() == FailureClass.RETRYABLE

        assert scheduler.last_failure_classification == FailureClass.RETRYABLE
        assert session.state == SessionState.AUTHENTICATED

    @pytest.mark.asyncio
    async def test_reportable_failure_is_swallowed(self, scheduler, session, credential_store, clock, source):
        sign_in(session, credential_store, clock)
        source.error = make_http_error(404, "not found")

        assert await scheduler.tick() == FailureClass.REPORTABLE
        assert session.state == SessionState.AUTHENTICATED

    @pytest.mark.asyncio
    async def test_session_fatal_failure_signs_out(self, scheduler, session, credential_store, clock, cache, source):
        sign_in(session, credential_store, clock)
        await cache.get_or_fetch()
        source.error = make_http_error(403, "The caller does not have permission")

        assert await scheduler.tick() == FailureClass.SESSION_FATAL

        assert session.state == SessionState.UNAUTHENTICATED
        assert cache.snapshot is None
        assert credential_store.load() is None

    @pytest.mark.asyncio
    async def test_success_clears_last_failure(self, scheduler, session, credential_store, clock, source):
        sign_in(session, credential_store, clock)
        source.error = make_http_error(500)
        await scheduler.tick()

        source.error = None
        await scheduler.tick()

        assert scheduler.last_failure_classification is None


class TestRefreshNow:
    """Tests for manual refresh."""

    @pytest.mark.asyncio
    async def test_failure_propagates(self, scheduler, session, credential_store, clock, source):
        sign_in(session, credential_store, clock)
        source.error = make_http_error(500)

        with pytest.raises(RemoteFetchFailedError):
            await scheduler.refresh_now()

    @pytest.mark.asyncio
    async def test_unauthenticated_propagates(self, scheduler):
        with pytest.raises(NotAuthenticatedError):
            await scheduler.refresh_now()

    @pytest.mark.asyncio
    async def test_manual_and_scheduled_share_one_fetch(self, scheduler, session, credential_store, clock, source):
        sign_in(session, credential_store, clock)
        source.gate = threading.Event()

        manual = asyncio.create_task(scheduler.refresh_now())
        await asyncio.to_thread(source.started.wait, 5)
        tick = asyncio.create_task(scheduler.tick())
        await asyncio.sleep(0)
        source.gate.set()

        records, classification = await asyncio.gather(manual, tick)

        assert source.calls == 1
        assert [r.name for r in records] == ["Alpha"]
        assert classification is None


class TestLifecycle:
    """Tests for starting and stopping the timer."""

    def test_rejects_non_positive_interval(self, session, cache):
        with pytest.raises(ValueError):
            RefreshScheduler(session, cache, interval_ms=0)

    @pytest.mark.asyncio
    async def test_start_and_stop(self, session, cache):
        scheduler = RefreshScheduler(session, cache, interval_ms=10)

        scheduler.start()
        scheduler.start()
        assert scheduler.running
        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert not scheduler.running
        assert scheduler.tick_count >= 1

    @pytest.mark.asyncio
    async def test_stop_without_start(self, scheduler):
        await scheduler.stop()
        assert not scheduler.running

    @pytest.mark.asyncio
    async def test_no_ticks_after_stop(self, session, cache):
        scheduler = RefreshScheduler(session, cache, interval_ms=10)
        scheduler.start()
        await asyncio.sleep(0.03)
        await scheduler.stop()
        count = scheduler.tick_count

        await asyncio.sleep(0.05)

        assert scheduler.tick_count == count


class TestUnexpectedErrors:
    """Tests for failures outside the dashboard error hierarchy."""

    @pytest.mark.asyncio
    async def test_tick_classifies_unexpected_error(self, scheduler, session, credential_store, clock, cache, monkeypatch):
        sign_in(session, credential_store, clock)

        async def broken_fetch(force_refresh=False):
            raise OSError("Read-only file system")

        monkeypatch.setattr(cache, "get_or_fetch", broken_fetch)

        assert await scheduler.tick() == FailureClass.REPORTABLE
        assert session.state == SessionState.AUTHENTICATED

    @pytest.mark.asyncio
    async def test_loop_survives_unexpected_error(self, session, credential_store, clock, cache, monkeypatch):
        sign_in(session, credential_store, clock)

        async def broken_fetch(force_refresh=False):
            raise RuntimeError("boom")

        monkeypatch.setattr(cache, "get_or_fetch", broken_fetch)
        scheduler = RefreshScheduler(session, cache, interval_ms=10)

        scheduler.start()
        try:
            await asyncio.sleep(0.1)
            assert scheduler.running
            assert scheduler.tick_count >= 2
        finally:
            await scheduler.stop()
