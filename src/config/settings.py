"""Handoff scheduler settings loaded from environment variables."""

from enum import StrEnum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    """Deployment environment."""

    DEV = "dev"
    STAGING = "staging"
    PROD = "prod"


class LogLevel(StrEnum):
    """Supported log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Application-wide settings loaded from environment variables / .env file.

    Business thresholds default to the reference values and can be
    overridden per deployment (e.g. per region).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Scheduling thresholds ---
    HUB_SLOT_EXPIRING_MINUTES: int = Field(
        default=30,
        ge=0,
        description="Remaining minutes at which a held hub slot counts as expiring.",
    )
    HIGH_VALUE_THRESHOLD: float = Field(
        default=500_000.0,
        ge=0,
        description="Declared value above which manual approval is required.",
    )
    HUB_SLOT_SUBSTITUTION_MINUTES: int = Field(
        default=90,
        gt=0,
        description="Hub hold length applied when an alternative slot is substituted.",
    )

    # --- Logging ---
    LOG_LEVEL: LogLevel = Field(
        default=LogLevel.INFO,
        description="Application log level.",
    )

    # --- Environment ---
    ENVIRONMENT: Environment = Field(
        default=Environment.DEV,
        description="Deployment environment (dev/staging/prod).",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT == Environment.PROD


def get_settings() -> Settings:
    """Factory function for dependency injection via FastAPI Depends."""
    return Settings()
