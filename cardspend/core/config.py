from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    This uses pydantic-settings so that we get type validation and defaults.
    Settings are loaded from environment variables with optional .env file override.
    """

    # App basics
    ENV: Literal["development", "staging", "production"] = "development"
    """Environment mode: affects logging and database reset protection."""

    DEBUG: bool = True
    """Enable debug mode: verbose logging and development features."""

    # DB
    DATABASE_URL: Optional[str] = None
    """Database connection URL. If None, uses SQLite for development."""

    # Time handling
    REFERENCE_TIMEZONE: str = "Asia/Tokyo"
    """IANA zone used for period boundaries and for emails that omit an offset."""

    WEEK_STARTS_ON: Literal["sunday", "monday"] = "sunday"
    """First day of a WEEKLY report period."""

    # Thresholds
    THRESHOLD_SOURCE: Literal["database", "settings"] = "database"
    """Where threshold tables are read from on every report run."""

    WEEKLY_THRESHOLDS: Optional[list[int]] = None
    """[level1, level2, level3] for weekly reports (THRESHOLD_SOURCE=settings)."""

    MONTHLY_THRESHOLDS: Optional[list[int]] = None
    """[level1, level2, level3] for monthly reports (THRESHOLD_SOURCE=settings)."""

    # Email / IMAP
    IMAP_HOST: Optional[str] = None
    """IMAP server hostname for email fetching."""

    IMAP_USER: Optional[str] = None
    """IMAP username/email for authentication."""

    IMAP_PASS: Optional[str] = None
    """IMAP password for authentication."""

    IMAP_MAILBOX: str = "INBOX"
    """Mailbox watched for card usage notifications."""

    IMAP_POLL_INTERVAL_SECONDS: int = 60
    """Delay between two UNSEEN polls."""

    IMAP_TIMEOUT_SECONDS: int = 30
    """IMAP connection timeout in seconds."""

    MAILBOX_AUTO_START: bool = False
    """Start the mailbox gateway on app startup."""

    # Notifications
    DISCORD_WEBHOOK_URL: Optional[str] = None
    """Discord webhook receiving alerts. If None, alerts are only logged."""

    NOTIFIER_TIMEOUT_SECONDS: float = 10.0
    """HTTP timeout for webhook delivery."""

    # Model config
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance to avoid re-parsing .env repeatedly."""
    return Settings()
