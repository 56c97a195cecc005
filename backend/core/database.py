"""MongoDB async connection manager.

Provides singleton client and database references.
Creates indexes on startup for the session and daily rollup collections.
"""
import logging
from contextlib import asynccontextmanager

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from config.settings import get_settings
from core.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None

SESSIONS = "user_sessions"
DAILY_STATS = "daily_stats"

ONE_ACTIVE_SESSION_INDEX = "one_active_session_per_user"


def get_client() -> AsyncIOMotorClient:
    global _client
    if _client is None:
        settings = get_settings()
        # tz_aware: datetimes come back as aware UTC, matching what we write
        _client = AsyncIOMotorClient(
            settings.MONGO_URL,
            tz_aware=True,
            serverSelectionTimeoutMS=settings.MONGO_TIMEOUT_MS,
        )
    return _client


def get_db() -> AsyncIOMotorDatabase:
    global _db
    if _db is None:
        settings = get_settings()
        _db = get_client()[settings.DB_NAME]
    return _db


async def init_indexes() -> None:
    """Create required indexes. Idempotent."""
    db = get_db()

    # Sessions: at most one active row per user, enforced by the store
    await db[SESSIONS].create_index("session_id", unique=True)
    await db[SESSIONS].create_index(
        "user_id",
        unique=True,
        partialFilterExpression={"is_active": True},
        name=ONE_ACTIVE_SESSION_INDEX,
    )
    await db[SESSIONS].create_index([("is_active", 1), ("last_seen", 1)])
    await db[SESSIONS].create_index([("user_id", 1), ("is_active", 1)])

    # Daily rollups: one document per day key
    await db[DAILY_STATS].create_index("date", unique=True)

    logger.info("MongoDB indexes initialized")


async def ping() -> bool:
    """Round-trip to the server. False when unreachable."""
    try:
        await get_db().command("ping")
        return True
    except PyMongoError as e:
        logger.warning("MongoDB ping failed: %s", str(e)[:120])
        return False


async def close_db() -> None:
    global _client, _db
    if _client:
        _client.close()
        _client = None
        _db = None
        logger.info("MongoDB connection closed")


@asynccontextmanager
async def store_errors(operation: str):
    """Translate driver failures into StoreUnavailableError.

    Callers that handle DuplicateKeyError themselves must catch it inside
    this block; anything that escapes is treated as the store being down.
    """
    try:
        yield
    except PyMongoError as e:
        logger.error("Store failure during %s: %s", operation, str(e)[:200])
        raise StoreUnavailableError(f"{operation} failed: {type(e).__name__}") from e
