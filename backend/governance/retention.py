"""Retention policy — bounded history.

Inactive sessions and daily rollups older than their retention window are
deleted. Active sessions are never deleted, whatever their age.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from config.settings import get_settings
from core.clock import day_key, utc_now
from core.database import DAILY_STATS, SESSIONS, get_db, store_errors
from core.exceptions import TrackerError

logger = logging.getLogger(__name__)


def _cutoffs(now: datetime) -> Dict[str, Any]:
    settings = get_settings()
    return {
        "sessions": now - timedelta(days=settings.RETENTION_SESSION_DAYS),
        "daily_stats": day_key(
            now - timedelta(days=settings.RETENTION_DAILY_DAYS),
            settings.STATS_UTC_OFFSET_HOURS,
        ),
    }


async def run_retention_cleanup(*, now: Optional[datetime] = None) -> Dict[str, int]:
    """Delete expired history. Returns deleted counts per collection."""
    db = get_db()
    now = now or utc_now()
    cutoffs = _cutoffs(now)
    results = {}

    async with store_errors("retention_cleanup"):
        r = await db[SESSIONS].delete_many({
            "is_active": False,
            "last_seen": {"$lt": cutoffs["sessions"]},
        })
        results["sessions"] = r.deleted_count

        # Day keys are YYYY-MM-DD, so string order is date order
        r = await db[DAILY_STATS].delete_many({"date": {"$lt": cutoffs["daily_stats"]}})
        results["daily_stats"] = r.deleted_count

    logger.info("[Retention] Cleanup: %s", results)
    return results


async def get_retention_status(*, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Current policy and how much each collection would lose right now."""
    settings = get_settings()
    db = get_db()
    now = now or utc_now()
    cutoffs = _cutoffs(now)

    async with store_errors("retention_status"):
        sessions_total = await db[SESSIONS].count_documents({})
        sessions_expired = await db[SESSIONS].count_documents({
            "is_active": False,
            "last_seen": {"$lt": cutoffs["sessions"]},
        })
        daily_total = await db[DAILY_STATS].count_documents({})
        daily_expired = await db[DAILY_STATS].count_documents({"date": {"$lt": cutoffs["daily_stats"]}})

    return {
        "policy": {
            "sessions": settings.RETENTION_SESSION_DAYS,
            "daily_stats": settings.RETENTION_DAILY_DAYS,
        },
        "collections": {
            "sessions": {"total": sessions_total, "expired": sessions_expired},
            "daily_stats": {"total": daily_total, "expired": daily_expired},
        },
    }


async def retention_loop(interval_s: Optional[int] = None) -> None:
    """Run cleanup every interval_s seconds until cancelled."""
    interval_s = interval_s or get_settings().RETENTION_INTERVAL_S
    logger.info("[Retention] loop started — every %ds", interval_s)
    while True:
        try:
            await run_retention_cleanup()
        except TrackerError as e:
            logger.error("[Retention] cleanup failed (%s): %s", e.code, e.message[:120])
        except Exception:
            logger.exception("[Retention] unexpected cleanup error")
        await asyncio.sleep(interval_s)
