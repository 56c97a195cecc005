"""Stats poller — pulls GET /api/stats and publishes a status card.

Pull-only. A failed read never produces zero/default numbers: the last good
snapshot is kept, marked stale, and an unreachable card is published.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from config.settings import get_settings
from core.clock import utc_now
from reporter.cards import build_status_card, build_unreachable_card, format_presence_text

logger = logging.getLogger(__name__)

REQUIRED_KEYS = (
    "currentOnline", "currentMobile", "currentDesktop",
    "todayLogins", "todayMobile", "todayDesktop", "todayUniqueUsers",
)

# publish(card, presence_text); presence_text is None when unreachable
Publisher = Callable[[Dict[str, Any], Optional[str]], Awaitable[None]]


async def fetch_stats(client: httpx.AsyncClient, url: str, secret: str) -> Optional[Dict[str, Any]]:
    """GET the stats snapshot. None on any transport, HTTP or shape failure."""
    try:
        response = await client.get(url, headers={"x-stats-key": secret})
    except httpx.HTTPError as e:
        logger.error("[Reporter] Fetch failed: url=%s error=%s", url, type(e).__name__)
        return None

    if response.status_code != 200:
        logger.warning(
            "[Reporter] Rejected: url=%s status=%d body=%s",
            url, response.status_code, response.text[:200],
        )
        return None

    try:
        body = response.json()
    except ValueError:
        logger.warning("[Reporter] Non-JSON response from %s", url)
        return None

    data = body.get("data") if isinstance(body, dict) else None
    if not isinstance(data, dict) or not body.get("success"):
        logger.warning("[Reporter] Unexpected response shape from %s", url)
        return None
    missing = [k for k in REQUIRED_KEYS if not isinstance(data.get(k), int)]
    if missing:
        logger.warning("[Reporter] Snapshot missing fields: %s", ", ".join(missing))
        return None
    return data


@dataclass
class ReportState:
    last_snapshot: Optional[Dict[str, Any]] = None
    last_success: Optional[datetime] = None
    reachable: bool = False
    consecutive_failures: int = 0

    @property
    def stale(self) -> bool:
        return not self.reachable and self.last_snapshot is not None


class StatsPoller:
    """Polls the stats endpoint and hands each resulting card to `publish`."""

    def __init__(
        self,
        publish: Publisher,
        *,
        url: Optional[str] = None,
        secret: Optional[str] = None,
        interval_s: Optional[int] = None,
        timeout_s: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        settings = get_settings()
        self.url = url or settings.STATS_URL
        self.secret = secret if secret is not None else settings.STATS_SECRET
        self.interval_s = interval_s or settings.REPORT_INTERVAL_S
        self.timeout_s = timeout_s or settings.REPORT_TIMEOUT_S
        self.utc_offset_hours = settings.STATS_UTC_OFFSET_HOURS
        self.tz_label = settings.STATS_TZ_LABEL
        self.state = ReportState()
        self._publish = publish
        self._client = client
        self._clock = clock

    async def _fetch(self) -> Optional[Dict[str, Any]]:
        if self._client is not None:
            return await fetch_stats(self._client, self.url, self.secret)
        async with httpx.AsyncClient(timeout=self.timeout_s) as client:
            return await fetch_stats(client, self.url, self.secret)

    async def poll_once(self) -> Dict[str, Any]:
        """One fetch + publish. Returns the card that was published."""
        now = self._clock()
        snapshot = await self._fetch()

        if snapshot is not None:
            self.state.last_snapshot = snapshot
            self.state.last_success = now
            self.state.reachable = True
            self.state.consecutive_failures = 0
            card = build_status_card(
                snapshot, now=now,
                utc_offset_hours=self.utc_offset_hours, tz_label=self.tz_label,
            )
            presence = format_presence_text(snapshot)
            logger.info(
                "[Reporter] Updated — online=%d today_logins=%d",
                snapshot["currentOnline"], snapshot["todayLogins"],
            )
        else:
            self.state.reachable = False
            self.state.consecutive_failures += 1
            card = build_unreachable_card(
                self.state.last_snapshot, self.state.last_success, now=now,
                utc_offset_hours=self.utc_offset_hours, tz_label=self.tz_label,
            )
            presence = None
            logger.warning(
                "[Reporter] Stats unreachable (%d in a row), stale=%s",
                self.state.consecutive_failures, self.state.stale,
            )

        try:
            await self._publish(card, presence)
        except Exception:
            logger.exception("[Reporter] Publish failed")
        return card

    async def run(self) -> None:
        """Poll every interval_s seconds until cancelled."""
        owns_client = self._client is None
        if owns_client:
            self._client = httpx.AsyncClient(timeout=self.timeout_s)
        logger.info("[Reporter] started — url=%s every %ds", self.url, self.interval_s)
        try:
            while True:
                await self.poll_once()
                await asyncio.sleep(self.interval_s)
        finally:
            if owns_client:
                await self._client.aclose()
                self._client = None
