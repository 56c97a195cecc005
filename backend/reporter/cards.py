"""Status card rendering for the reporting client.

Cards are plain dicts shaped like a chat embed (title, color, description,
fields, footer) so any publisher can render them. Snapshots are the
camelCase payload returned by GET /api/stats.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from core.clock import as_utc, reporting_tz

CARD_TITLE = "📊 SERVER STATUS"

COLOR_ACTIVE = 0x2ECC71
COLOR_IDLE = 0x95A5A6
COLOR_UNREACHABLE = 0xE74C3C


def format_age(seconds: float) -> str:
    """Coarse human age: 'just now', '42s ago', '5m ago', '3h ago', '2d ago'."""
    seconds = max(0, int(seconds))
    if seconds < 5:
        return "just now"
    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def format_presence_text(snapshot: Dict[str, Any]) -> str:
    count = snapshot["currentOnline"]
    return f"{count} user online" if count == 1 else f"{count} users online"


def _footer(now: datetime, utc_offset_hours: int, tz_label: str) -> str:
    local = as_utc(now).astimezone(reporting_tz(utc_offset_hours))
    return f"🕐 Update: {local:%H:%M:%S} {tz_label}  •  {local:%A, %d %B %Y}"


def _online_field(snapshot: Dict[str, Any], name: str) -> Dict[str, Any]:
    return {
        "name": name,
        "value": "\n".join([
            f"> Total: **{snapshot['currentOnline']} user**",
            f"> 📱 Mobile: **{snapshot['currentMobile']}**",
            f"> 💻 Desktop: **{snapshot['currentDesktop']}**",
        ]),
        "inline": False,
    }


def _today_field(snapshot: Dict[str, Any], name: str) -> Dict[str, Any]:
    return {
        "name": name,
        "value": "\n".join([
            f"> Total logins: **{snapshot['todayLogins']}x**",
            f"> From mobile: **{snapshot['todayMobile']}x**",
            f"> From desktop: **{snapshot['todayDesktop']}x**",
            f"> Unique users: **{snapshot['todayUniqueUsers']}**",
        ]),
        "inline": False,
    }


def build_status_card(
    snapshot: Dict[str, Any],
    *,
    now: datetime,
    utc_offset_hours: int = 7,
    tz_label: str = "WIB",
) -> Dict[str, Any]:
    """Card for a fresh snapshot."""
    active = snapshot["currentOnline"] > 0
    return {
        "title": CARD_TITLE,
        "color": COLOR_ACTIVE if active else COLOR_IDLE,
        "description": "**Status:** 🟢 ONLINE" if active else "**Status:** ⚫ NO USERS ONLINE",
        "fields": [
            _online_field(snapshot, "👥 Online now"),
            _today_field(snapshot, f"📅 Today ({snapshot.get('date', '')})"),
        ],
        "footer": _footer(now, utc_offset_hours, tz_label),
        "stale": False,
    }


def build_unreachable_card(
    last_snapshot: Optional[Dict[str, Any]],
    last_success: Optional[datetime],
    *,
    now: datetime,
    utc_offset_hours: int = 7,
    tz_label: str = "WIB",
) -> Dict[str, Any]:
    """Card for a failed read.

    Shows the last good snapshot labelled stale with its age, or no numbers
    at all if there never was one.
    """
    fields = []
    if last_snapshot is not None:
        age = "unknown age"
        if last_success is not None:
            age = format_age((as_utc(now) - as_utc(last_success)).total_seconds())
        fields = [
            _online_field(last_snapshot, f"👥 Last known, stale ({age})"),
            _today_field(last_snapshot, f"📅 Last known today ({last_snapshot.get('date', '')})"),
        ]
    return {
        "title": CARD_TITLE,
        "color": COLOR_UNREACHABLE,
        "description": "⚠️ **Cannot reach the tracker server**",
        "fields": fields,
        "footer": "Retrying… | " + _footer(now, utc_offset_hours, tz_label),
        "stale": last_snapshot is not None,
    }
