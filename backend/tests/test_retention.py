"""Retention: bounded session and rollup history."""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

import governance.retention as retention
from core.database import DAILY_STATS, SESSIONS
from governance.retention import get_retention_status, retention_loop, run_retention_cleanup

NOW = datetime(2026, 3, 10, 5, 0, tzinfo=timezone.utc)


def _session(user_id, *, active, last_seen):
    return {
        "session_id": f"s-{user_id}",
        "user_id": user_id,
        "device_type": "desktop",
        "ip_address": None,
        "user_agent": "",
        "is_active": active,
        "login_at": last_seen,
        "last_seen": last_seen,
        "ended_at": None if active else last_seen,
        "end_reason": None if active else "logout",
    }


@pytest.fixture
async def seeded(db):
    await db[SESSIONS].insert_one(_session("old-closed", active=False, last_seen=NOW - timedelta(days=45)))
    await db[SESSIONS].insert_one(_session("recent-closed", active=False, last_seen=NOW - timedelta(days=3)))
    # Active rows are never deleted, however old
    await db[SESSIONS].insert_one(_session("old-active", active=True, last_seen=NOW - timedelta(days=60)))
    for date in ("2025-11-01", "2025-12-09", "2026-03-01"):
        await db[DAILY_STATS].insert_one({
            "date": date, "total_logins": 1, "mobile_logins": 0, "desktop_logins": 1,
            "unique_user_ids": ["u1"],
        })
    return db


class TestRetentionCleanup:

    async def test_deletes_only_expired_history(self, seeded):
        result = await run_retention_cleanup(now=NOW)

        assert result == {"sessions": 1, "daily_stats": 2}
        remaining = sorted(d["user_id"] for d in await seeded[SESSIONS].find({}).to_list(None))
        assert remaining == ["old-active", "recent-closed"]
        dates = [d["date"] for d in await seeded[DAILY_STATS].find({}).to_list(None)]
        assert dates == ["2026-03-01"]

    async def test_status_reports_expired_counts(self, seeded):
        status = await get_retention_status(now=NOW)

        assert status["policy"] == {"sessions": 30, "daily_stats": 90}
        assert status["collections"]["sessions"] == {"total": 3, "expired": 1}
        assert status["collections"]["daily_stats"] == {"total": 3, "expired": 2}

    async def test_second_run_deletes_nothing(self, seeded):
        await run_retention_cleanup(now=NOW)
        assert await run_retention_cleanup(now=NOW) == {"sessions": 0, "daily_stats": 0}


class TestRetentionLoop:

    async def test_failure_is_logged_and_loop_continues(self, unreachable_db, monkeypatch, caplog):
        class _Stop(Exception):
            pass

        calls = []

        async def fake_sleep(seconds):
            calls.append(seconds)
            if len(calls) == 2:
                raise _Stop()

        monkeypatch.setattr(retention, "asyncio", SimpleNamespace(sleep=fake_sleep))

        with pytest.raises(_Stop):
            await retention_loop(interval_s=3600)

        assert calls == [3600, 3600]
        assert "cleanup failed (STORE_UNAVAILABLE)" in caplog.text
