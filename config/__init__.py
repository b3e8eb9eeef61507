"""
Configuration Package for Uptime Monitor

Settings management with environment variable and .env support.
"""

from config.settings import (
    Settings,
    DatabaseSettings,
    MonitoringSettings,
    NotificationSettings,
    TelegramSettings,
    LoggingSettings,
    WebSettings,
    get_settings,
)

__all__ = [
    "Settings",
    "DatabaseSettings",
    "MonitoringSettings",
    "NotificationSettings",
    "TelegramSettings",
    "LoggingSettings",
    "WebSettings",
    "get_settings",
]
