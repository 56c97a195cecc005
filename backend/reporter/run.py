"""Reporting client entry point.

    python -m reporter.run   (from backend/)

Publishes to the log only; a chat integration supplies its own publisher.
"""
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parent.parent
load_dotenv(ROOT_DIR / ".env")

from config.settings import get_settings
from core.logging_config import setup_logging
from reporter.poller import StatsPoller

logger = logging.getLogger(__name__)


async def log_publisher(card, presence_text) -> None:
    lines = [card["title"], card["description"]]
    for field in card["fields"]:
        lines.append(field["name"])
        lines.append(field["value"])
    lines.append(card["footer"])
    logger.info("[Reporter] Card%s:\n%s", " (stale)" if card["stale"] else "", "\n".join(lines))
    if presence_text:
        logger.info("[Reporter] Presence: %s", presence_text)


def main() -> int:
    setup_logging()
    settings = get_settings()
    if not settings.STATS_SECRET:
        logger.error("STATS_SECRET is not set — the stats endpoint will reject every poll")
        return 1

    poller = StatsPoller(log_publisher)
    try:
        asyncio.run(poller.run())
    except KeyboardInterrupt:
        logger.info("[Reporter] stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
