"""Session store — login, logout, heartbeat and expiry of login sessions.

One active session per user. A new login closes the previous one
("superseded") before inserting its own row; the partial unique index on
user_id (is_active=true) makes the store reject a second active row when
logins race across processes, and the losing login retries close+insert.
Within one process logins for the same user are additionally serialized by
a per-user asyncio.Lock.
"""
import asyncio
import logging
import weakref
from datetime import datetime, timedelta
from typing import Optional

from pymongo.errors import DuplicateKeyError

from config.settings import get_settings
from core.clock import day_key, utc_now
from core.database import SESSIONS, get_db, store_errors
from core.exceptions import SessionConflictError, StoreUnavailableError
from schemas.session import DeviceType, EndReason, Session
from tracking.daily import apply_login
from tracking.device import detect_device
from tracking.inputs import clip_user_agent, normalize_ip, validate_threshold, validate_user_id

logger = logging.getLogger(__name__)

_user_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def _user_lock(user_id: str) -> asyncio.Lock:
    lock = _user_locks.get(user_id)
    if lock is None:
        lock = asyncio.Lock()
        _user_locks[user_id] = lock
    return lock


async def _close_active(db, user_id: str, now: datetime, reason: EndReason) -> int:
    result = await db[SESSIONS].update_many(
        {"user_id": user_id, "is_active": True},
        {"$set": {"is_active": False, "ended_at": now, "end_reason": reason.value}},
    )
    return result.modified_count


async def _open_session(
    db,
    user_id: str,
    device_type: DeviceType,
    ip_address: Optional[str],
    user_agent: str,
    now: datetime,
    attempts: int,
) -> Session:
    for attempt in range(1, attempts + 1):
        closed = await _close_active(db, user_id, now, EndReason.SUPERSEDED)
        session = Session(
            user_id=user_id,
            device_type=device_type,
            ip_address=ip_address,
            user_agent=user_agent,
            login_at=now,
            last_seen=now,
        )
        try:
            await db[SESSIONS].insert_one(session.to_doc())
        except DuplicateKeyError:
            logger.warning(
                "Concurrent login won the active slot: user=%s attempt=%d/%d",
                user_id, attempt, attempts,
            )
            continue
        if closed:
            logger.info("Superseded %d session(s): user=%s", closed, user_id)
        return session

    raise SessionConflictError(
        f"Could not open a session for user {user_id} after {attempts} conflicting attempts"
    )


async def record_login(
    user_id: str,
    user_agent: str = "",
    ip_address: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> Session:
    """Record a successful login: close the prior session, open a new one,
    and count the login in today's rollup.

    The session write is committed before the rollup. If the rollup write
    fails the session stays recorded and StoreUnavailableError is raised.
    """
    user_id = validate_user_id(user_id)
    ip_address = normalize_ip(ip_address)
    user_agent = clip_user_agent(user_agent)
    device_type = detect_device(user_agent)
    now = now or utc_now()
    settings = get_settings()
    db = get_db()

    async with _user_lock(user_id):
        async with store_errors("record_login"):
            session = await _open_session(
                db, user_id, device_type, ip_address, user_agent, now,
                settings.LOGIN_CONFLICT_RETRIES,
            )

    date = day_key(now, settings.STATS_UTC_OFFSET_HOURS)
    try:
        await apply_login(user_id, device_type, date, now=now)
    except StoreUnavailableError:
        logger.error(
            "Login recorded but daily rollup failed: user=%s session=%s date=%s",
            user_id, session.session_id, date,
        )
        raise

    logger.info(
        "Login recorded: user=%s session=%s device=%s",
        user_id, session.session_id, session.device_type,
    )
    return session


async def record_logout(user_id: str, *, now: Optional[datetime] = None) -> int:
    """Close every active session of the user. No active session is a no-op."""
    user_id = validate_user_id(user_id)
    now = now or utc_now()
    db = get_db()

    async with _user_lock(user_id):
        async with store_errors("record_logout"):
            closed = await _close_active(db, user_id, now, EndReason.LOGOUT)

    if closed:
        logger.info("Logout recorded: user=%s closed=%d", user_id, closed)
    else:
        logger.debug("Logout with no active session: user=%s", user_id)
    return closed


async def heartbeat(user_id: str, *, now: Optional[datetime] = None) -> None:
    """Refresh last_seen on the user's active session.

    $max keeps last_seen monotonic even if an older heartbeat lands late.
    """
    user_id = validate_user_id(user_id)
    now = now or utc_now()
    db = get_db()

    async with store_errors("heartbeat"):
        result = await db[SESSIONS].update_many(
            {"user_id": user_id, "is_active": True},
            {"$max": {"last_seen": now}},
        )

    if result.matched_count == 0:
        logger.debug("Heartbeat without active session: user=%s", user_id)


async def expire_inactive(
    threshold_minutes: Optional[int] = None,
    *,
    now: Optional[datetime] = None,
) -> int:
    """Deactivate every active session with last_seen strictly before
    now - threshold. One conditional bulk update, so a heartbeat that lands
    before the update runs keeps its session alive.
    """
    if threshold_minutes is None:
        threshold_minutes = get_settings().SESSION_INACTIVE_MINUTES
    threshold_minutes = validate_threshold(threshold_minutes)
    now = now or utc_now()
    cutoff = now - timedelta(minutes=threshold_minutes)
    db = get_db()

    async with store_errors("expire_inactive"):
        result = await db[SESSIONS].update_many(
            {"is_active": True, "last_seen": {"$lt": cutoff}},
            {"$set": {"is_active": False, "ended_at": now, "end_reason": EndReason.EXPIRED.value}},
        )
    return result.modified_count


async def get_active_session(user_id: str) -> Optional[Session]:
    user_id = validate_user_id(user_id)
    db = get_db()
    async with store_errors("get_active_session"):
        doc = await db[SESSIONS].find_one({"user_id": user_id, "is_active": True})
    if doc is None:
        return None
    return Session.from_doc(doc)


async def count_active_sessions(user_id: Optional[str] = None) -> int:
    query: dict = {"is_active": True}
    if user_id is not None:
        query["user_id"] = validate_user_id(user_id)
    db = get_db()
    async with store_errors("count_active_sessions"):
        return await db[SESSIONS].count_documents(query)
