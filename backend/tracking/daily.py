"""Daily aggregator — per-day login rollups.

Each login is merged into its day's document with one atomic update:
$inc on the counters and $addToSet on the unique user list. Counters and
membership therefore move together and never drift under concurrent logins.
"""
import logging
from datetime import datetime
from typing import List, Optional

from pymongo.errors import DuplicateKeyError

from core.clock import utc_now
from core.database import DAILY_STATS, get_db, store_errors
from schemas.daily_stat import DailyStat
from schemas.session import DeviceType

logger = logging.getLogger(__name__)

# First-of-day upserts racing on the unique date index: the loser retries
# once, by then the document exists and the upsert becomes a plain update.
_UPSERT_ATTEMPTS = 2


async def apply_login(
    user_id: str,
    device_type: DeviceType | str,
    date: str,
    *,
    now: Optional[datetime] = None,
) -> None:
    """Count one login for `date`, creating the day's document if needed."""
    now = now or utc_now()
    is_mobile = DeviceType(device_type) == DeviceType.MOBILE

    update = {
        # The non-matching counter is incremented by 0 so both exist from creation
        "$inc": {
            "total_logins": 1,
            "mobile_logins": 1 if is_mobile else 0,
            "desktop_logins": 0 if is_mobile else 1,
        },
        "$addToSet": {"unique_user_ids": user_id},
        "$set": {"updated_at": now},
        "$setOnInsert": {"created_at": now},
    }

    db = get_db()
    async with store_errors("apply_login"):
        for attempt in range(1, _UPSERT_ATTEMPTS + 1):
            try:
                await db[DAILY_STATS].update_one({"date": date}, update, upsert=True)
                break
            except DuplicateKeyError:
                if attempt == _UPSERT_ATTEMPTS:
                    raise
                logger.debug("Daily upsert collided for date=%s, retrying", date)

    logger.debug("Daily stat updated: date=%s user=%s mobile=%s", date, user_id, is_mobile)


async def get_daily_stat(date: str) -> Optional[DailyStat]:
    db = get_db()
    async with store_errors("get_daily_stat"):
        doc = await db[DAILY_STATS].find_one({"date": date})
    if doc is None:
        return None
    return DailyStat.from_doc(doc)


async def list_daily_stats(since_date: str, limit: int = 366) -> List[DailyStat]:
    """Rollups with date >= since_date, newest first."""
    db = get_db()
    async with store_errors("list_daily_stats"):
        cursor = db[DAILY_STATS].find({"date": {"$gte": since_date}}).sort("date", -1)
        docs = await cursor.to_list(limit)
    return [DailyStat.from_doc(d) for d in docs]
