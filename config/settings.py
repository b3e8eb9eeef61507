"""
Settings Module for Uptime Monitor

Configuration management using Pydantic Settings.
Supports environment variables, .env files, and runtime configuration.
Includes validation, type checking, and sensible defaults.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment enumeration."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class DatabaseType(str, Enum):
    """Supported database types."""
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"


class BaseSettingsConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True
    )


class DatabaseSettings(BaseSettingsConfig):
    """
    Database Configuration Settings

    SQLite is the default backend; PostgreSQL is supported through asyncpg.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        extra="ignore"
    )

    type: DatabaseType = Field(
        default=DatabaseType.SQLITE,
        description="Database type: postgresql or sqlite"
    )

    # PostgreSQL settings
    host: str = Field(default="localhost", description="Database host address")
    port: int = Field(default=5432, ge=1, le=65535, description="Database port number")
    name: str = Field(
        default="uptime_monitor",
        min_length=1,
        max_length=64,
        description="Database name"
    )
    user: str = Field(default="postgres", min_length=1, max_length=64)
    password: SecretStr = Field(default=SecretStr(""), description="Database password")

    # SQLite settings
    sqlite_path: Path = Field(
        default=Path("data/uptime_monitor.db"),
        description="Path to SQLite database file"
    )

    echo: bool = Field(default=False, description="Log all SQL statements")

    @property
    def url(self) -> str:
        """Generate database URL based on configuration."""
        if self.type == DatabaseType.SQLITE:
            self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite+aiosqlite:///{self.sqlite_path}"

        if self.type == DatabaseType.POSTGRESQL:
            password = self.password.get_secret_value()
            return (
                f"postgresql+asyncpg://{self.user}:{password}"
                f"@{self.host}:{self.port}/{self.name}"
            )

        raise ValueError(f"Unsupported database type: {self.type}")

    @field_validator("sqlite_path")
    @classmethod
    def validate_sqlite_path(cls, v: Path) -> Path:
        """Validate and normalize SQLite path."""
        if not v.suffix:
            v = v.with_suffix(".db")
        return v


class MonitoringSettings(BaseSettingsConfig):
    """
    Monitoring Engine Configuration Settings

    Controls the tick cadence, the probe timeout and how many probes may be
    in flight at once.
    """

    model_config = SettingsConfigDict(
        env_prefix="MONITOR_",
        env_file=".env",
        extra="ignore"
    )

    tick_interval: float = Field(
        default=30.0,
        gt=0,
        le=86400,
        description="Seconds between two scheduled ticks"
    )
    probe_timeout: float = Field(
        default=15.0,
        gt=0,
        le=300,
        description="Per-probe timeout in seconds"
    )
    startup_delay: float = Field(
        default=2.0,
        ge=0,
        le=300,
        description="Settling delay before the first tick after startup"
    )
    max_concurrent_probes: int = Field(
        default=20,
        ge=1,
        le=500,
        description="Maximum concurrent probes within one tick (1 = sequential)"
    )
    user_agent: str = Field(
        default="UptimeMonitor/1.0",
        description="User-Agent header sent with every probe"
    )


class NotificationSettings(BaseSettingsConfig):
    """Status-change notification settings."""

    model_config = SettingsConfigDict(
        env_prefix="NOTIFY_",
        env_file=".env",
        extra="ignore"
    )

    enabled: bool = Field(default=True, description="Send status-change alerts")
    cooldown: float = Field(
        default=3600.0,
        ge=0,
        le=7 * 86400,
        description="Minimum seconds between two alerts for one endpoint/destination"
    )


class TelegramSettings(BaseSettingsConfig):
    """Credentials for the Telegram notification transport."""

    model_config = SettingsConfigDict(
        env_prefix="TELEGRAM_",
        env_file=".env",
        extra="ignore"
    )

    bot_token: Optional[SecretStr] = Field(
        default=None,
        description="Bot API token; alerts are not delivered when unset"
    )
    parse_mode: Optional[str] = Field(
        default=None,
        description="Telegram parse mode for alert messages"
    )

    @field_validator("bot_token")
    @classmethod
    def validate_token(cls, v: Optional[SecretStr]) -> Optional[SecretStr]:
        """Reject tokens that cannot possibly be valid."""
        if v is None or not v.get_secret_value():
            return None
        token = v.get_secret_value()
        if ":" not in token:
            raise ValueError("Invalid bot token format (expected '<id>:<secret>')")
        return v

    @property
    def is_configured(self) -> bool:
        return self.bot_token is not None


class LoggingSettings(BaseSettingsConfig):
    """Logging sinks and levels."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        extra="ignore"
    )

    level: LogLevel = Field(default=LogLevel.INFO, description="Minimum log level")
    console_enabled: bool = Field(default=True)
    colorize: bool = Field(default=True)
    file_enabled: bool = Field(default=False)
    file_path: Path = Field(default=Path("logs/uptime_monitor.log"))
    rotation: str = Field(default="10 MB", description="Log file rotation trigger")
    retention: str = Field(default="14 days", description="How long rotated logs are kept")
    json_enabled: bool = Field(default=False, description="Serialize file logs as JSON")
    errors_file_path: Optional[Path] = Field(
        default=Path("logs/errors.log"),
        description="Separate error-only log file (unset to disable)"
    )


class WebSettings(BaseSettingsConfig):
    """Health endpoint settings."""

    model_config = SettingsConfigDict(
        env_prefix="WEB_",
        env_file=".env",
        extra="ignore"
    )

    enabled: bool = Field(default=True)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080, ge=1, le=65535)


class Settings(BaseSettingsConfig):
    """
    Main Settings Class

    Aggregates all settings sections and provides the main
    configuration interface for the application.
    """

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment"
    )
    app_name: str = Field(default="Uptime Monitor")
    app_version: str = Field(default="1.0.0")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    web: WebSettings = Field(default_factory=WebSettings)

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @model_validator(mode="after")
    def configure_for_environment(self) -> "Settings":
        """Apply environment-specific configuration."""
        if self.is_production:
            self.database.echo = False
        return self

    def to_dict(self, *, exclude_secrets: bool = True) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        data = self.model_dump(mode="json")

        if exclude_secrets:
            def remove_secrets(obj: Any) -> Any:
                if isinstance(obj, dict):
                    return {
                        k: remove_secrets(v)
                        for k, v in obj.items()
                        if "password" not in k.lower()
                        and "secret" not in k.lower()
                        and "token" not in k.lower()
                    }
                return obj

            data = remove_secrets(data)

        return data


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
