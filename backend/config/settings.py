"""Centralized settings module — single source of truth for all config.

Secrets (STATS_SECRET, JWT_SECRET) come from env vars only. Loaded once per
process and never mutated at runtime; change them by restarting.
"""
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    # ── Environment ──────────────────────────────────────────────
    ENV: Literal["dev", "staging", "prod"] = Field(default="dev")

    # ── MongoDB ──────────────────────────────────────────────────
    MONGO_URL: str = Field(default="mongodb://localhost:27017")
    DB_NAME: str = Field(default="online_tracker_dev")
    MONGO_TIMEOUT_MS: int = Field(default=5000)

    # ── Stats bridge auth ────────────────────────────────────────
    # Shared with the reporting client, sent as the x-stats-key header
    STATS_SECRET: str = Field(default="")

    # ── Heartbeat middleware (reads tokens issued by the auth system) ──
    JWT_SECRET: str = Field(default="")
    JWT_ALGORITHM: str = Field(default="HS256")
    HEARTBEAT_MIN_INTERVAL_S: int = Field(default=60)

    # ── Session tracking ─────────────────────────────────────────
    SESSION_INACTIVE_MINUTES: int = Field(default=15)
    SWEEP_INTERVAL_S: int = Field(default=300)  # every 5 minutes
    SWEEPER_ENABLED: bool = Field(default=True)
    LOGIN_CONFLICT_RETRIES: int = Field(default=3)

    # ── Reporting day (fixed offset, WIB by default) ─────────────
    STATS_UTC_OFFSET_HOURS: int = Field(default=7)
    STATS_TZ_LABEL: str = Field(default="WIB")

    # ── Retention ────────────────────────────────────────────────
    RETENTION_SESSION_DAYS: int = Field(default=30)  # inactive sessions only
    RETENTION_DAILY_DAYS: int = Field(default=90)
    RETENTION_INTERVAL_S: int = Field(default=86400)
    RETENTION_ENABLED: bool = Field(default=True)
    HISTORY_MAX_DAYS: int = Field(default=90)

    # ── Reporting client ─────────────────────────────────────────
    STATS_URL: str = Field(default="http://localhost:8001/api/stats")
    REPORT_INTERVAL_S: int = Field(default=30)
    REPORT_TIMEOUT_S: float = Field(default=10.0)

    # ── Observability ────────────────────────────────────────────
    LOG_LEVEL: str = Field(default="INFO")
    LOG_REDACTION_ENABLED: bool = Field(default=True)

    model_config = {
        "env_file": str(_ROOT / ".env"),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
