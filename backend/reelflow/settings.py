from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        extra="ignore",
    )

    app_name: str = "reelflow"
    environment: str = Field(default="local", validation_alias=AliasChoices("ENVIRONMENT", "REELFLOW_ENVIRONMENT"))
    database_url: str = Field(
        default="postgresql+asyncpg://postgres:postgres@db:5432/reelflow",
        validation_alias=AliasChoices("DATABASE_URL", "REELFLOW_DATABASE_URL"),
    )
    redis_url: str = Field(default="redis://redis:6379/0", validation_alias=AliasChoices("REDIS_URL", "REELFLOW_REDIS_URL"))
    celery_enabled: bool = Field(default=True, validation_alias=AliasChoices("CELERY_ENABLED", "REELFLOW_CELERY_ENABLED"))
    telegram_bot_token: str | None = Field(default=None, validation_alias=AliasChoices("TELEGRAM_BOT_TOKEN", "REELFLOW_TELEGRAM_BOT_TOKEN"))
    telegram_chat_id: str | None = Field(default=None, validation_alias=AliasChoices("TELEGRAM_CHAT_ID", "REELFLOW_TELEGRAM_CHAT_ID"))

    # Workflow policy
    dissolution_threshold: int = Field(default=4, ge=1, validation_alias=AliasChoices("DISSOLUTION_THRESHOLD", "REELFLOW_DISSOLUTION_THRESHOLD"))
    auto_approve_trusted: bool = Field(default=True, validation_alias=AliasChoices("AUTO_APPROVE_TRUSTED", "REELFLOW_AUTO_APPROVE_TRUSTED"))
    initial_production_stage: str = Field(default="PLANNING", validation_alias=AliasChoices("INITIAL_PRODUCTION_STAGE", "REELFLOW_INITIAL_PRODUCTION_STAGE"))
    trusted_shoot_bypass: bool = Field(default=True, validation_alias=AliasChoices("TRUSTED_SHOOT_BYPASS", "REELFLOW_TRUSTED_SHOOT_BYPASS"))

    # Auto-assign serialization
    assignment_lock_enabled: bool = Field(default=True, validation_alias=AliasChoices("ASSIGNMENT_LOCK_ENABLED", "REELFLOW_ASSIGNMENT_LOCK_ENABLED"))
    assignment_lock_ttl_sec: int = Field(default=30, validation_alias=AliasChoices("ASSIGNMENT_LOCK_TTL_SEC", "REELFLOW_ASSIGNMENT_LOCK_TTL_SEC"))
    assignment_lock_wait_sec: int = Field(default=10, validation_alias=AliasChoices("ASSIGNMENT_LOCK_WAIT_SEC", "REELFLOW_ASSIGNMENT_LOCK_WAIT_SEC"))

    # Comma-separated; "*" allows any origin
    cors_origins: str = Field(default="*", validation_alias=AliasChoices("CORS_ORIGINS", "REELFLOW_CORS_ORIGINS"))

    # Scheduler / watchdog
    scheduler_enabled: bool = Field(default=True, validation_alias=AliasChoices("SCHEDULER_ENABLED", "REELFLOW_SCHEDULER_ENABLED"))
    watchdog_enabled: bool = Field(default=True, validation_alias=AliasChoices("WATCHDOG_ENABLED", "REELFLOW_WATCHDOG_ENABLED"))
    watchdog_interval_minutes: int = Field(default=60, validation_alias=AliasChoices("WATCHDOG_INTERVAL_MINUTES", "REELFLOW_WATCHDOG_INTERVAL_MINUTES"))
    stale_review_hours: int = Field(default=48, validation_alias=AliasChoices("STALE_REVIEW_HOURS", "REELFLOW_STALE_REVIEW_HOURS"))

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def async_database_url(self) -> str:
        if self.database_url.startswith("postgresql+"):
            return self.database_url
        if self.database_url.startswith("postgresql://"):
            return self.database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.database_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
