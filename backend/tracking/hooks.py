"""Integration points for the authentication system.

The auth system calls track_login after a successful credential check and
track_logout on logout. HeartbeatMiddleware can be mounted on the auth
system's FastAPI app to refresh last_seen from authenticated requests.
None of these are public endpoints of their own.
"""
import logging
import time
from typing import Dict, Optional

import jwt
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from config.settings import get_settings
from core.exceptions import TrackerError, ValidationError
from schemas.session import Session
from tracking.inputs import normalize_ip
from tracking.sessions import heartbeat, record_login, record_logout

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> Optional[str]:
    """First X-Forwarded-For hop, else the socket peer. None if neither parses."""
    candidates = []
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        candidates.append(forwarded.split(",")[0].strip())
    if request.client is not None:
        candidates.append(request.client.host)
    for candidate in candidates:
        try:
            return normalize_ip(candidate)
        except ValidationError:
            continue
    return None


async def track_login(request: Request, user_id: str) -> Session:
    """Call right after the auth system accepted the user's credentials."""
    user_agent = request.headers.get("user-agent", "")
    return await record_login(user_id, user_agent, client_ip(request))


async def track_logout(user_id: str) -> int:
    return await record_logout(user_id)


class HeartbeatMiddleware(BaseHTTPMiddleware):
    """Refreshes the caller's session from its Bearer token.

    Tokens are only decoded here, not enforced: rejecting bad tokens is the
    auth system's job. At most one heartbeat per user per min_interval_s.
    """

    _PRUNE_AT = 10_000

    def __init__(self, app, min_interval_s: Optional[int] = None):
        super().__init__(app)
        settings = get_settings()
        self.min_interval_s = min_interval_s or settings.HEARTBEAT_MIN_INTERVAL_S
        self._last_beat: Dict[str, float] = {}

    def _user_from_request(self, request: Request) -> Optional[str]:
        settings = get_settings()
        auth = request.headers.get("authorization", "")
        if not settings.JWT_SECRET or not auth.lower().startswith("bearer "):
            return None
        token = auth[7:].strip()
        try:
            payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        except jwt.InvalidTokenError:
            return None
        user_id = payload.get("user_id") or payload.get("sub")
        return str(user_id) if user_id else None

    def _due(self, user_id: str) -> bool:
        now = time.monotonic()
        last = self._last_beat.get(user_id)
        if last is not None and now - last < self.min_interval_s:
            return False
        if len(self._last_beat) >= self._PRUNE_AT:
            self._last_beat = {
                u: t for u, t in self._last_beat.items() if now - t < self.min_interval_s
            }
        self._last_beat[user_id] = now
        return True

    async def dispatch(self, request: Request, call_next):
        user_id = self._user_from_request(request)
        if user_id and self._due(user_id):
            try:
                await heartbeat(user_id)
            except TrackerError as e:
                # Liveness is best-effort; the user's request still proceeds
                logger.warning("Heartbeat skipped (%s): user=%s %s", e.code, user_id, e.message[:80])
        return await call_next(request)
