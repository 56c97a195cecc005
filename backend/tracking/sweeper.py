"""Session expiry sweeper — periodic background task.

Runs inside the backend process. Each tick deactivates sessions idle longer
than the threshold. A failed tick is logged and simply waits for the next
one; missed ticks are never replayed.
"""
import asyncio
import logging
from typing import Optional

from config.settings import get_settings
from core.exceptions import TrackerError
from tracking.sessions import expire_inactive

logger = logging.getLogger(__name__)

_FAILURE_ALERT_THRESHOLD = 5


async def run_sweep(threshold_minutes: Optional[int] = None) -> Optional[int]:
    """One sweep. Returns the number expired, or None if the sweep failed."""
    try:
        count = await expire_inactive(threshold_minutes)
    except TrackerError as e:
        logger.error("[SWEEPER] sweep failed (%s): %s", e.code, e.message[:120])
        return None

    if count > 0:
        logger.info("[SWEEPER] Expired %d inactive session(s)", count)
    return count


async def sweeper_loop(
    interval_s: Optional[int] = None,
    threshold_minutes: Optional[int] = None,
) -> None:
    """Sweep every interval_s seconds until cancelled."""
    settings = get_settings()
    interval_s = interval_s or settings.SWEEP_INTERVAL_S
    threshold_minutes = threshold_minutes or settings.SESSION_INACTIVE_MINUTES
    logger.info(
        "[SWEEPER] started — every %ds, threshold %dmin", interval_s, threshold_minutes,
    )

    consecutive_failures = 0
    while True:
        try:
            result = await run_sweep(threshold_minutes)
        except Exception:
            logger.exception("[SWEEPER] unexpected tick error")
            result = None
        if result is None:
            consecutive_failures += 1
            if consecutive_failures == _FAILURE_ALERT_THRESHOLD:
                logger.critical(
                    "[SWEEPER] %d consecutive failed sweeps — online counts may be stale",
                    consecutive_failures,
                )
        else:
            consecutive_failures = 0
        await asyncio.sleep(interval_s)
