"""Shared fixtures: settings env and an in-memory MongoDB.

mongomock is synchronous; the thin async wrappers below give it motor's
call shape. Every call yields to the event loop first so concurrent
asyncio.gather scenarios interleave between store operations the way they
do against a real server.
"""
from pathlib import Path
import asyncio
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import mongomock
import pytest
from pymongo.errors import ServerSelectionTimeoutError

from config.settings import get_settings
import core.database as database

TEST_STATS_SECRET = "test-stats-secret-0123456789"
TEST_JWT_SECRET = "test-jwt-secret-0123456789abcdefghij"


class AsyncCursor:
    def __init__(self, cursor):
        self._cursor = cursor

    def sort(self, *args, **kwargs):
        self._cursor = self._cursor.sort(*args, **kwargs)
        return self

    def limit(self, count):
        self._cursor = self._cursor.limit(count)
        return self

    async def to_list(self, length=None):
        await asyncio.sleep(0)
        docs = list(self._cursor)
        return docs if length is None else docs[:length]


class AsyncCollection:
    def __init__(self, collection):
        self._collection = collection

    def find(self, *args, **kwargs):
        return AsyncCursor(self._collection.find(*args, **kwargs))

    def __getattr__(self, name):
        method = getattr(self._collection, name)

        async def call(*args, **kwargs):
            await asyncio.sleep(0)
            return method(*args, **kwargs)

        return call


class AsyncDatabase:
    def __init__(self, db):
        self._db = db

    def __getitem__(self, name):
        return AsyncCollection(self._db[name])

    async def command(self, *args, **kwargs):
        await asyncio.sleep(0)
        return self._db.command(*args, **kwargs)


class UnreachableCollection:
    """Every operation fails the way motor does when no server answers."""

    def find(self, *args, **kwargs):
        return self

    def sort(self, *args, **kwargs):
        return self

    def __getattr__(self, name):
        async def call(*args, **kwargs):
            raise ServerSelectionTimeoutError("localhost:27017: [Errno 111] Connection refused")

        return call


class UnreachableDatabase:
    def __getitem__(self, name):
        return UnreachableCollection()

    async def command(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("localhost:27017: [Errno 111] Connection refused")


@pytest.fixture(autouse=True)
def settings_env(monkeypatch):
    monkeypatch.setenv("ENV", "dev")
    monkeypatch.setenv("STATS_SECRET", TEST_STATS_SECRET)
    monkeypatch.setenv("JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("STATS_UTC_OFFSET_HOURS", "7")
    monkeypatch.setenv("SESSION_INACTIVE_MINUTES", "15")
    monkeypatch.setenv("HISTORY_MAX_DAYS", "90")
    monkeypatch.setenv("STATS_URL", "http://tracker.test/api/stats")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
async def db(monkeypatch):
    client = mongomock.MongoClient(tz_aware=True)
    adapter = AsyncDatabase(client["online_tracker_test"])
    monkeypatch.setattr(database, "_db", adapter)
    await database.init_indexes()
    return adapter


@pytest.fixture
def unreachable_db(monkeypatch):
    adapter = UnreachableDatabase()
    monkeypatch.setattr(database, "_db", adapter)
    return adapter
