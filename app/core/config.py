"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, bot token, provider endpoint, etc.)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="elecbot",
        description="MongoDB database name"
    )

    # Telegram
    TELEGRAM_BOT_TOKEN: Optional[str] = Field(
        default=None,
        description="Telegram Bot API token"
    )
    TELEGRAM_API_BASE: str = Field(
        default="https://api.telegram.org",
        description="Telegram Bot API base URL"
    )
    TELEGRAM_WEBHOOK_URL: Optional[str] = Field(
        default=None,
        description="Public webhook URL registered with Telegram on startup"
    )
    TELEGRAM_WEBHOOK_SECRET: Optional[str] = Field(
        default=None,
        description="Secret token Telegram echoes in X-Telegram-Bot-Api-Secret-Token"
    )

    # Balance provider (Wanxiao smart water & electricity service)
    WANXIAO_API_URL: str = Field(
        default="https://xqh5.17wanxiao.com/smartWaterAndElectricityService/SWAEServlet",
        description="Balance query endpoint"
    )
    WANXIAO_TIMEOUT: float = Field(
        default=10.0,
        description="Balance query timeout in seconds"
    )

    # User defaults
    DEFAULT_NOTIFY_THRESHOLD: float = Field(
        default=10.0,
        description="Low-balance threshold for new users"
    )
    DEFAULT_CHECK_INTERVAL: int = Field(
        default=60,
        description="Check interval in minutes for new users"
    )

    # Monitoring
    MONITOR_ENABLED: bool = Field(
        default=True,
        description="Run the periodic balance monitor"
    )
    MONITOR_CRON: str = Field(
        default="* * * * *",
        description="Crontab expression for the monitoring tick"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api/v1",
        description="API route prefix"
    )

    @field_validator("TELEGRAM_WEBHOOK_SECRET")
    @classmethod
    def validate_webhook_secret(cls, v, info: ValidationInfo):
        """Ensure the webhook secret is set in production."""
        if info.data.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("TELEGRAM_WEBHOOK_SECRET is required in production environment")
        return v

    @field_validator("DEFAULT_CHECK_INTERVAL")
    @classmethod
    def validate_check_interval(cls, v):
        if v < 1:
            raise ValueError("DEFAULT_CHECK_INTERVAL must be at least 1 minute")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    from apscheduler.triggers.cron import CronTrigger

    errors = []

    if not settings.TELEGRAM_BOT_TOKEN:
        errors.append("TELEGRAM_BOT_TOKEN is required")

    if not settings.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if not settings.WANXIAO_API_URL:
        errors.append("WANXIAO_API_URL is required")

    if settings.WANXIAO_TIMEOUT <= 0:
        errors.append("WANXIAO_TIMEOUT must be positive")

    try:
        CronTrigger.from_crontab(settings.MONITOR_CRON)
    except ValueError as e:
        errors.append(f"MONITOR_CRON is invalid: {e}")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
