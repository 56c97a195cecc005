"""Daily aggregator: atomic per-day rollups."""
import asyncio
from datetime import datetime, timedelta, timezone

from core.database import DAILY_STATS
from schemas.session import DeviceType
from tracking.daily import apply_login, get_daily_stat, list_daily_stats
from tracking.sessions import record_login

from test_device import IPHONE_UA, WINDOWS_UA

NOW = datetime(2026, 3, 10, 5, 0, tzinfo=timezone.utc)
TODAY = "2026-03-10"


def assert_consistent(stat):
    assert stat.total_logins == stat.mobile_logins + stat.desktop_logins
    assert stat.unique_users <= stat.total_logins
    assert len(set(stat.unique_user_ids)) == stat.unique_users


class TestApplyLogin:

    async def test_first_login_creates_day(self, db):
        await apply_login("u1", DeviceType.MOBILE, TODAY, now=NOW)

        stat = await get_daily_stat(TODAY)
        assert stat.total_logins == 1
        assert stat.mobile_logins == 1
        assert stat.desktop_logins == 0
        assert stat.unique_user_ids == ["u1"]
        assert stat.created_at == NOW
        assert stat.updated_at == NOW

    async def test_repeat_user_counted_once_as_unique(self, db):
        await apply_login("u1", DeviceType.MOBILE, TODAY, now=NOW)
        await apply_login("u1", "desktop", TODAY, now=NOW + timedelta(minutes=3))

        stat = await get_daily_stat(TODAY)
        assert stat.total_logins == 2
        assert stat.unique_users == 1
        assert stat.created_at == NOW
        assert stat.updated_at == NOW + timedelta(minutes=3)
        assert_consistent(stat)

    async def test_concurrent_first_logins_share_one_document(self, db):
        await asyncio.gather(*[
            apply_login(f"u{i}", DeviceType.DESKTOP, TODAY, now=NOW) for i in range(10)
        ])

        assert await db[DAILY_STATS].count_documents({"date": TODAY}) == 1
        stat = await get_daily_stat(TODAY)
        assert stat.total_logins == 10
        assert stat.unique_users == 10
        assert_consistent(stat)

    async def test_concurrent_mixed_logins_keep_invariants(self, db):
        users = [f"u{i % 5}" for i in range(20)]
        await asyncio.gather(*[
            record_login(u, IPHONE_UA if i % 3 == 0 else WINDOWS_UA, now=NOW)
            for i, u in enumerate(users)
        ])

        stat = await get_daily_stat(TODAY)
        assert stat.total_logins == 20
        assert stat.mobile_logins == 7
        assert stat.unique_users == 5
        assert_consistent(stat)

    async def test_two_users_concurrently(self, db):
        await asyncio.gather(
            record_login("alice", IPHONE_UA, now=NOW),
            record_login("bob", WINDOWS_UA, now=NOW),
        )

        stat = await get_daily_stat(TODAY)
        assert sorted(stat.unique_user_ids) == ["alice", "bob"]
        assert stat.total_logins == 2

    async def test_missing_day_is_none(self, db):
        assert await get_daily_stat("1999-01-01") is None


class TestDayBoundary:

    async def test_login_after_local_midnight_lands_on_next_day(self, db):
        # 17:30 UTC is 00:30 the next day at UTC+7
        await record_login("u1", now=datetime(2026, 3, 10, 17, 30, tzinfo=timezone.utc))

        assert await get_daily_stat("2026-03-10") is None
        assert (await get_daily_stat("2026-03-11")).total_logins == 1


class TestListDailyStats:

    async def test_newest_first_from_since_date(self, db):
        for day in ("2026-03-07", "2026-03-08", "2026-03-09", "2026-03-10"):
            await apply_login("u1", DeviceType.MOBILE, day, now=NOW)

        stats = await list_daily_stats("2026-03-08")
        assert [s.date for s in stats] == ["2026-03-10", "2026-03-09", "2026-03-08"]

        limited = await list_daily_stats("2026-03-01", limit=2)
        assert [s.date for s in limited] == ["2026-03-10", "2026-03-09"]
