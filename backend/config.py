"""
Memoriae configuration: all environment variables in one place.

Read from environment at runtime. Never hardcode secrets.
"""

from __future__ import annotations

import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings from environment variables."""

    # Database
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "")

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Follow-up scheduler
    SCHEDULER_ENABLED: bool = _env_bool("SCHEDULER_ENABLED", True)
    FOLLOWUP_CHECK_INTERVAL_SECONDS: float = float(os.environ.get("FOLLOWUP_CHECK_INTERVAL_SECONDS", "60"))
    FOLLOWUP_AUTO_SNOOZE_AFTER_MINUTES: int = int(os.environ.get("FOLLOWUP_AUTO_SNOOZE_AFTER_MINUTES", "30"))
    FOLLOWUP_AUTO_SNOOZE_MINUTES: int = int(os.environ.get("FOLLOWUP_AUTO_SNOOZE_MINUTES", "90"))
    FOLLOWUP_RECENT_SNOOZE_MINUTES: int = int(os.environ.get("FOLLOWUP_RECENT_SNOOZE_MINUTES", "5"))
    SCHEDULER_STOP_TIMEOUT_SECONDS: float = float(os.environ.get("SCHEDULER_STOP_TIMEOUT_SECONDS", "5"))


# Singleton instance
settings = Settings()
