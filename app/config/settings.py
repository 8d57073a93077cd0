"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.config.business_constants import (
    DEFAULT_INVITATION_TTL_DAYS,
    DEFAULT_REFERRAL_CODE_PREFIX,
)
from app.utils.validation import PREFIX_PATTERN

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str | None = "logs/promorang.log"

    # HTTP API
    api_host: str = "0.0.0.0"
    api_port: int = Field(
        default=3001, ge=1, le=65535, description="HTTP API port"
    )
    app_url: str = Field(
        default="https://promorang.co",
        description="Public web app URL used in share and affiliate links",
    )
    api_url: str = Field(
        default="http://localhost:3001",
        description="Public API URL used for QR code links",
    )
    internal_api_token: str | None = Field(
        default=None,
        description="Shared secret for system-only endpoints (track-earning)",
    )

    # Referral program
    referral_code_prefix: str = DEFAULT_REFERRAL_CODE_PREFIX

    # Advertiser teams
    invitation_ttl_days: int = Field(
        default=DEFAULT_INVITATION_TTL_DAYS,
        gt=0,
        description="Days before a team invitation expires",
    )

    # Commission retry sweep
    commission_retry_enabled: bool = True
    commission_retry_interval_minutes: int = Field(
        default=5, ge=1, description="Minutes between retry sweeps"
    )
    commission_retry_max_attempts: int = Field(
        default=5,
        ge=1,
        description="Failed attempts after which a commission is left for manual review",
    )
    commission_stale_pending_minutes: int = Field(
        default=10,
        ge=1,
        description="Age after which a pending commission is considered abandoned",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(
            ("postgresql://", "postgresql+asyncpg://", "sqlite+aiosqlite://")
        ):
            raise ValueError(
                "DATABASE_URL must start with postgresql+asyncpg:// "
                "(or sqlite+aiosqlite:// for tests)"
            )
        if v.startswith("postgresql://"):
            # Async engine requires the asyncpg driver
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate loguru level name."""
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(
                f"Invalid LOG_LEVEL: {v}. Must be one of {', '.join(LOG_LEVELS)}"
            )
        return level

    @field_validator("referral_code_prefix")
    @classmethod
    def validate_referral_code_prefix(cls, v: str) -> str:
        """Validate referral code prefix."""
        prefix = v.strip().upper()
        if not PREFIX_PATTERN.match(prefix):
            raise ValueError(
                "REFERRAL_CODE_PREFIX must be 1-10 letters or digits"
            )
        return prefix

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Validate production-specific requirements."""
        if self.environment == "production":
            if self.debug:
                raise ValueError(
                    "DEBUG must be False in production environment. "
                    "Set DEBUG=false in your .env file."
                )
            if not self.internal_api_token:
                logger.warning(
                    "INTERNAL_API_TOKEN is not set: system endpoints "
                    "(track-referral, track-earning) are disabled"
                )
        return self

    @property
    def is_sqlite(self) -> bool:
        """Check if running against SQLite (tests)."""
        return self.database_url.startswith("sqlite")


# Global settings instance
settings = Settings()
