"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for admin operations)"
    )

    # ===================
    # TELEGRAM
    # ===================
    telegram_bot_token: Optional[str] = Field(
        None,
        description="Telegram bot token from @BotFather"
    )
    telegram_chat_id: Optional[str] = Field(
        None,
        description="Telegram chat ID for reminder digests"
    )

    # ===================
    # ROLES
    # ===================
    manager_username: str = Field(
        default="admin",
        min_length=1,
        description="Username that is registered with the manager role"
    )

    # ===================
    # URGENCY THRESHOLDS
    # ===================
    time_sensitive_score_threshold: int = Field(
        default=70,
        ge=0,
        le=200,
        description="Urgency score at which a need counts as time-sensitive"
    )
    time_sensitive_due_days: int = Field(
        default=7,
        ge=0,
        le=60,
        description="Needs due within this many days are time-sensitive"
    )
    perishable_window_days: int = Field(
        default=10,
        ge=0,
        le=60,
        description="Perishable needs due within this many days are time-sensitive"
    )

    # ===================
    # REMINDERS
    # ===================
    reminder_days_warning: int = Field(
        default=3,
        ge=0,
        le=30,
        description="Remind about needs due within this many days"
    )
    reminder_perishable_days: int = Field(
        default=5,
        ge=0,
        le=30,
        description="Remind about perishable needs due within this many days"
    )
    reminder_service_days: int = Field(
        default=7,
        ge=0,
        le=30,
        description="Remind about volunteer needs due within this many days"
    )

    # ===================
    # API LIMITS
    # ===================
    max_list_limit: int = Field(
        default=500,
        ge=1,
        le=5000,
        description="Largest accepted limit on list endpoints"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=5000,
        ge=1000,
        le=65535,
        description="API port"
    )
    cors_origins: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5173",
            "http://localhost:8080",
        ],
        description="Origins allowed to call the API from a browser"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def telegram_configured(self) -> bool:
        """Check if Telegram is properly configured."""
        return bool(self.telegram_bot_token and self.telegram_chat_id)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
