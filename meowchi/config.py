"""Application configuration."""
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_debug: bool = True
    log_level: str = "DEBUG"
    uvicorn_workers: int = Field(
        default=1,
        description="Number of Uvicorn workers",
    )

    # Database
    database_url: str = Field(
        ...,
        description="Database connection URL (required)",
    )
    db_pool_size: int = Field(
        default=20,
        description="DB connection pool size",
    )
    db_max_overflow: int = Field(
        default=10,
        description="Max overflow connections",
    )
    db_pool_timeout: int = Field(
        default=30,
        description="Pool connection timeout in seconds",
    )
    db_pool_recycle: int = Field(
        default=1800,
        description="Connection recycle time in seconds",
    )
    db_lock_timeout_ms: int = Field(
        default=5000,
        description="Postgres lock_timeout applied to every connection (0 = wait forever)",
    )

    # Redis (Celery broker / result backend)
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL used by Celery",
    )

    # Telegram
    telegram_bot_token: str = Field(
        ...,
        description="Bot token used to verify Mini App initData (required)",
    )
    init_data_max_age_seconds: int = Field(
        default=86400,
        description="Maximum age of Telegram initData (auth_date) in seconds",
    )

    # Meow counter & claims
    meow_tap_cap: int = Field(
        default=42,
        description="Taps a user needs in one day to become eligible for a claim",
    )
    meow_daily_quota: int = Field(
        default=42,
        description="Global number of claims accepted per calendar day",
    )
    tap_cooldown_ms: int = Field(
        default=220,
        description="Per-process tap throttle window in milliseconds (0 disables)",
    )
    tap_throttle_max_entries: int = Field(
        default=50_000,
        description="Maximum users tracked by the per-process tap throttle",
    )
    meow_promo_code: str = "MEOW42"
    meow_discount_percent: int = 42
    log_claims: bool = Field(
        default=False,
        description="Emit debug logs for every eligibility evaluation",
    )

    # Daily streak
    streak_bonus_per_day: int = 500

    # Sentry
    sentry_dsn: str | None = Field(
        default=None,
        description="Sentry DSN for error tracking",
    )
    sentry_traces_sample_rate: float = Field(
        default=0.05,
        description="Sentry transaction sampling rate (0.0-1.0)",
    )
    sentry_profiles_sample_rate: float = Field(
        default=0.01,
        description="Sentry profiling sampling rate (0.0-1.0)",
    )

    # CORS
    cors_origins: str = "http://localhost:5173"

    @field_validator("meow_tap_cap", "meow_daily_quota", "meow_discount_percent")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Caps and percentages must be positive."""
        if v <= 0:
            raise ValueError("value must be a positive integer")
        return v

    @field_validator("tap_cooldown_ms", "db_lock_timeout_ms")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("value must not be negative")
        return v

    @field_validator("telegram_bot_token")
    @classmethod
    def validate_bot_token(cls, v: str) -> str:
        """Telegram tokens look like '<bot id>:<secret>'."""
        bot_id, sep, secret = v.partition(":")
        if not sep or not bot_id.isdigit() or not secret:
            raise ValueError(
                "telegram_bot_token must have the form '<bot id>:<secret>'"
            )
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate settings for production environment."""
        if self.app_env == "production":
            if self.app_debug:
                raise ValueError(
                    "app_debug must be False in production environment"
                )

            origins = [o.strip() for o in self.cors_origins.split(",")]
            if "*" in origins:
                raise ValueError(
                    "CORS wildcard '*' is not allowed in production environment. "
                    "Specify explicit allowed origins."
                )

            if self.log_level == "DEBUG":
                import warnings
                warnings.warn(
                    "DEBUG log level in production may expose sensitive information"
                )

        return self

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
