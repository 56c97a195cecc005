"""Expiry sweeper: single sweeps and the background loop."""
from datetime import timedelta
from types import SimpleNamespace

import pytest

import tracking.sweeper as sweeper
from core.clock import utc_now
from tracking.sessions import get_active_session, record_login
from tracking.sweeper import run_sweep, sweeper_loop


class _StopLoop(Exception):
    pass


def _fake_sleep_stopping_after(n, calls):
    async def fake_sleep(seconds):
        calls.append(seconds)
        if len(calls) >= n:
            raise _StopLoop()
    return fake_sleep


class TestRunSweep:

    async def test_expires_idle_sessions(self, db, caplog):
        caplog.set_level("INFO")
        await record_login("idle", now=utc_now() - timedelta(minutes=30))
        await record_login("fresh", now=utc_now())

        assert await run_sweep(15) == 1
        assert await get_active_session("idle") is None
        assert await get_active_session("fresh") is not None
        assert "Expired 1 inactive session(s)" in caplog.text

    async def test_nothing_to_expire_logs_nothing(self, db, caplog):
        caplog.set_level("INFO")
        assert await run_sweep(15) == 0
        assert "Expired" not in caplog.text

    async def test_store_failure_returns_none(self, unreachable_db, caplog):
        assert await run_sweep(15) is None
        assert "sweep failed (STORE_UNAVAILABLE)" in caplog.text


class TestSweeperLoop:

    async def test_loop_sleeps_interval_between_sweeps(self, monkeypatch):
        sweeps = []

        async def fake_run_sweep(threshold):
            sweeps.append(threshold)
            return 0

        calls = []
        monkeypatch.setattr(sweeper, "run_sweep", fake_run_sweep)
        monkeypatch.setattr(sweeper, "asyncio", SimpleNamespace(sleep=_fake_sleep_stopping_after(3, calls)))

        with pytest.raises(_StopLoop):
            await sweeper_loop(interval_s=42, threshold_minutes=15)

        assert sweeps == [15, 15, 15]
        assert calls == [42, 42, 42]

    async def test_loop_survives_failures_and_alerts(self, monkeypatch, caplog):
        async def failing_run_sweep(threshold):
            return None

        calls = []
        monkeypatch.setattr(sweeper, "run_sweep", failing_run_sweep)
        monkeypatch.setattr(sweeper, "asyncio", SimpleNamespace(sleep=_fake_sleep_stopping_after(6, calls)))

        with pytest.raises(_StopLoop):
            await sweeper_loop(interval_s=1, threshold_minutes=15)

        assert len(calls) == 6
        assert "5 consecutive failed sweeps" in caplog.text

    async def test_unexpected_error_does_not_kill_loop(self, monkeypatch, caplog):
        async def exploding_run_sweep(threshold):
            raise RuntimeError("boom")

        calls = []
        monkeypatch.setattr(sweeper, "run_sweep", exploding_run_sweep)
        monkeypatch.setattr(sweeper, "asyncio", SimpleNamespace(sleep=_fake_sleep_stopping_after(2, calls)))

        with pytest.raises(_StopLoop):
            await sweeper_loop(interval_s=1, threshold_minutes=15)

        assert len(calls) == 2
        assert "unexpected tick error" in caplog.text
