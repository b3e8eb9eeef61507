"""
============================================================================
UPTIME MONITOR - LOGGING UTILITY
============================================================================
Loguru-based logging: a console sink, an optional rotating file sink
(plain text or JSON), and a separate error-only file.

Components obtain a bound logger with ``get_logger("Component")``; the
component name is rendered in every line.
============================================================================
"""

import sys
from typing import Optional

from loguru import logger

from config.settings import LoggingSettings


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | "
    "{extra[component]}:{function}:{line} - {message}"
)


def setup_logging(settings: Optional[LoggingSettings] = None) -> None:
    """
    Configure logging sinks.

    Removes loguru's default handler and installs the console, file and
    error-file sinks enabled in *settings*.
    """
    settings = settings or LoggingSettings()
    logger.remove()
    # Records logged through the bare loguru logger still need a component
    logger.configure(extra={"component": "app"})

    log_level = settings.level.value

    if settings.console_enabled:
        logger.add(
            sys.stdout,
            format=CONSOLE_FORMAT,
            level=log_level,
            colorize=settings.colorize,
            backtrace=True,
            diagnose=False,
        )

    if settings.file_enabled:
        settings.file_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            settings.file_path,
            format=FILE_FORMAT,
            level=log_level,
            rotation=settings.rotation,
            retention=settings.retention,
            compression="zip",
            serialize=settings.json_enabled,
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )

    if settings.errors_file_path is not None:
        settings.errors_file_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            settings.errors_file_path,
            format=FILE_FORMAT,
            level="ERROR",
            rotation="1 day",
            retention="7 days",
            compression="zip",
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )

    logger.bind(component="Logging").info(
        f"Logging initialized — level={log_level}, "
        f"console={settings.console_enabled}, file={settings.file_enabled}"
    )


def get_logger(name: Optional[str] = None):
    """
    Get logger instance bound to a component name.

    Args:
        name: Component name shown in every log line

    Returns:
        Logger instance
    """
    if name:
        return logger.bind(component=name)
    return logger
