"""Input checks applied before any tracking call touches the store."""
import ipaddress
from typing import Optional

from core.exceptions import ValidationError

MAX_USER_ID_LEN = 128
MAX_USER_AGENT_LEN = 512


def validate_user_id(user_id) -> str:
    if not isinstance(user_id, str):
        raise ValidationError("user_id must be a string")
    cleaned = user_id.strip()
    if not cleaned:
        raise ValidationError("user_id is required")
    if len(cleaned) > MAX_USER_ID_LEN:
        raise ValidationError(f"user_id longer than {MAX_USER_ID_LEN} characters")
    if any(not ch.isprintable() for ch in cleaned):
        raise ValidationError("user_id contains control characters")
    return cleaned


def normalize_ip(ip_address: Optional[str]) -> Optional[str]:
    """Empty means unknown; anything else must parse as IPv4/IPv6."""
    if ip_address is None or not ip_address.strip():
        return None
    try:
        return str(ipaddress.ip_address(ip_address.strip()))
    except ValueError:
        raise ValidationError(f"Malformed IP address: {ip_address[:64]!r}")


def clip_user_agent(user_agent: Optional[str]) -> str:
    return (user_agent or "")[:MAX_USER_AGENT_LEN]


def validate_threshold(minutes: int) -> int:
    if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes <= 0:
        raise ValidationError("threshold_minutes must be a positive integer")
    return minutes
