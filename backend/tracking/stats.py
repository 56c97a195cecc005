"""Stats query — current online counts plus today's rollup.

Pure reads. Expiry is the sweeper's job; callers wanting fresher numbers
run expire_inactive themselves first.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from config.settings import get_settings
from core.clock import day_key, utc_now
from core.database import SESSIONS, get_db, store_errors
from core.exceptions import ValidationError
from schemas.daily_stat import DailySummary
from schemas.session import DeviceType
from schemas.stats import StatsSnapshot
from tracking.daily import get_daily_stat, list_daily_stats

logger = logging.getLogger(__name__)


async def get_stats(*, now: Optional[datetime] = None) -> StatsSnapshot:
    """Snapshot of who is online now and today's login totals."""
    settings = get_settings()
    now = now or utc_now()
    today = day_key(now, settings.STATS_UTC_OFFSET_HOURS)
    db = get_db()

    # One read, partitioned locally, so mobile + desktop == online
    async with store_errors("get_stats"):
        active = await db[SESSIONS].find(
            {"is_active": True}, {"device_type": 1, "_id": 0}
        ).to_list(None)

    current_mobile = sum(1 for s in active if s.get("device_type") == DeviceType.MOBILE.value)
    current_online = len(active)

    daily = await get_daily_stat(today)

    snapshot = StatsSnapshot(
        current_online=current_online,
        current_mobile=current_mobile,
        current_desktop=current_online - current_mobile,
        date=today,
        generated_at=now,
    )
    if daily is not None:
        snapshot.today_logins = daily.total_logins
        snapshot.today_mobile = daily.mobile_logins
        snapshot.today_desktop = daily.desktop_logins
        snapshot.today_unique_users = daily.unique_users

    logger.debug(
        "Stats computed: online=%d today_logins=%d date=%s",
        snapshot.current_online, snapshot.today_logins, today,
    )
    return snapshot


async def get_daily_history(days: int = 7, *, now: Optional[datetime] = None) -> List[DailySummary]:
    """Per-day rollups for the last `days` reporting days, newest first."""
    settings = get_settings()
    if isinstance(days, bool) or not isinstance(days, int) or not 1 <= days <= settings.HISTORY_MAX_DAYS:
        raise ValidationError(f"days must be between 1 and {settings.HISTORY_MAX_DAYS}")
    now = now or utc_now()
    since = day_key(now - timedelta(days=days - 1), settings.STATS_UTC_OFFSET_HOURS)
    stats = await list_daily_stats(since, limit=days)
    return [DailySummary.from_stat(s) for s in stats]
