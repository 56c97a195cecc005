"""Clock and reporting-day helpers.

Every tracking operation accepts an optional `now`; these helpers are the
only place the wall clock is read or turned into a day key.
"""
from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes (as stored by Mongo) as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def reporting_tz(utc_offset_hours: int) -> timezone:
    return timezone(timedelta(hours=utc_offset_hours))


def day_key(now: datetime, utc_offset_hours: int) -> str:
    """Calendar day (YYYY-MM-DD) of `now` in the fixed reporting timezone."""
    return as_utc(now).astimezone(reporting_tz(utc_offset_hours)).strftime("%Y-%m-%d")
