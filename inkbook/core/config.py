# inkbook/core/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global application configuration.

    Values are loaded from environment variables (or a local `.env` file)
    at runtime and cover:
    - DB connection
    - Slot generation defaults for the availability calculator
    - SMTP settings for booking notification emails
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Inkbook Scheduling"
    APP_ENV: str = Field("local", description="Environment name: local/dev/stage/prod")
    LOG_LEVEL: str = Field("INFO", description="Root log level for the service.")

    DB_URL: str = Field(
        "sqlite+aiosqlite:///./inkbook.db",
        description="SQLAlchemy-compatible async database URL",
    )

    # --- Availability defaults ---
    SLOT_INTERVAL_MINUTES: int = Field(
        default=30,
        gt=0,
        description="Granularity of generated start-time candidates.",
    )
    AVAILABILITY_WINDOW_DAYS: int = Field(
        default=90,
        gt=0,
        description="Days ahead of today used when a date query has no end.",
    )

    # --- SMTP / Email configuration ---
    SMTP_HOST: str | None = Field(
        default=None,
        description="SMTP server hostname for sending booking emails.",
    )
    SMTP_PORT: int = Field(
        default=587,
        description="SMTP server port (usually 587 for TLS).",
    )
    SMTP_USERNAME: str | None = Field(
        default=None,
        description="SMTP username (if authentication is required).",
    )
    SMTP_PASSWORD: str | None = Field(
        default=None,
        description="SMTP password (if authentication is required).",
    )
    SMTP_USE_TLS: bool = Field(
        default=True,
        description="Whether to use STARTTLS when connecting to SMTP.",
    )
    SMTP_FROM_ADDRESS: str | None = Field(
        default=None,
        description="From address used in booking request emails.",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached accessor for application settings.

    Settings are read and validated only once per process.
    """
    return Settings()
