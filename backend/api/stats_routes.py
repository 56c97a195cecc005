"""Stats bridge API — read endpoints polled by the reporting client.

Auth: shared secret in the x-stats-key header (STATS_SECRET).
"""
import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from config.settings import get_settings
from core.exceptions import (
    AuthError, SessionConflictError, StoreUnavailableError, TrackerError, ValidationError,
)
from tracking.sessions import expire_inactive
from tracking.stats import get_daily_history, get_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stats", tags=["stats"])


def check_stats_key(provided: Optional[str]) -> None:
    """Raises AuthError unless `provided` matches the configured secret."""
    secret = get_settings().STATS_SECRET
    if not secret or not provided:
        raise AuthError()
    if not hmac.compare_digest(provided.encode("utf-8"), secret.encode("utf-8")):
        raise AuthError()


def require_stats_key(x_stats_key: Optional[str] = Header(None)) -> None:
    try:
        check_stats_key(x_stats_key)
    except AuthError as e:
        logger.warning("Stats request rejected: %s", e.message)
        raise HTTPException(status_code=401, detail=e.message)


def _http_error(e: TrackerError) -> HTTPException:
    if isinstance(e, ValidationError):
        return HTTPException(status_code=422, detail=e.message)
    if isinstance(e, SessionConflictError):
        return HTTPException(status_code=409, detail=e.message)
    if isinstance(e, StoreUnavailableError):
        return HTTPException(status_code=503, detail=e.message)
    return HTTPException(status_code=500, detail=e.message)


@router.get("", dependencies=[Depends(require_stats_key)])
async def api_get_stats():
    """Current snapshot. Runs one expiry sweep first so the count is fresh."""
    settings = get_settings()
    try:
        await expire_inactive(settings.SESSION_INACTIVE_MINUTES)
        snapshot = await get_stats()
    except TrackerError as e:
        raise _http_error(e)
    return {"success": True, "data": snapshot.to_payload()}


@router.get("/daily", dependencies=[Depends(require_stats_key)])
async def api_get_daily_history(days: int = Query(7)):
    """Per-day login rollups, newest first."""
    try:
        history = await get_daily_history(days)
    except TrackerError as e:
        raise _http_error(e)
    return {"success": True, "data": [h.to_payload() for h in history], "days": days}
