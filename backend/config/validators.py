"""Startup configuration validation guardrails."""

import logging


logger = logging.getLogger(__name__)

_MIN_PROD_SECRET_LEN = 16


def _require_stats_secret(settings) -> None:
    """Fail closed if the stats bridge secret is not explicitly configured."""
    secret = settings.STATS_SECRET
    if not secret or not secret.strip():
        raise RuntimeError(
            "STARTUP FAILED — STATS_SECRET is required and cannot be empty. "
            "Set STATS_SECRET in backend/.env or container environment and restart the server."
        )
    if settings.ENV == "prod" and len(secret.strip()) < _MIN_PROD_SECRET_LEN:
        raise RuntimeError(
            f"STARTUP FAILED — STATS_SECRET must be at least {_MIN_PROD_SECRET_LEN} "
            "characters in production."
        )


def _check_positive_intervals(settings) -> None:
    required_positive = {
        "SESSION_INACTIVE_MINUTES": settings.SESSION_INACTIVE_MINUTES,
        "SWEEP_INTERVAL_S": settings.SWEEP_INTERVAL_S,
        "RETENTION_INTERVAL_S": settings.RETENTION_INTERVAL_S,
        "LOGIN_CONFLICT_RETRIES": settings.LOGIN_CONFLICT_RETRIES,
        "HISTORY_MAX_DAYS": settings.HISTORY_MAX_DAYS,
    }
    invalid = [k for k, v in required_positive.items() if v <= 0]
    if invalid:
        raise RuntimeError(
            f"STARTUP FAILED — must be positive: {', '.join(invalid)}"
        )


def validate_startup_config(settings) -> None:
    """Centralized startup guardrails for required and warning-level config."""
    _require_stats_secret(settings)
    _check_positive_intervals(settings)

    if not settings.JWT_SECRET:
        logger.warning("CONFIG WARNING: JWT_SECRET is not set — heartbeat middleware disabled")

    if settings.RETENTION_DAILY_DAYS < settings.HISTORY_MAX_DAYS:
        logger.warning(
            "CONFIG WARNING: HISTORY_MAX_DAYS=%d exceeds RETENTION_DAILY_DAYS=%d — "
            "older days will already be pruned",
            settings.HISTORY_MAX_DAYS, settings.RETENTION_DAILY_DAYS,
        )
