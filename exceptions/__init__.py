"""
Exceptions Package for Uptime Monitor

Provides the exception hierarchy used throughout the application.
"""

from exceptions.base import (
    UptimeMonitorException,
    ConfigurationError
)

from exceptions.database import (
    DatabaseException,
    DatabaseConnectionError,
    DatabaseDuplicateError,
    PersistenceError
)

from exceptions.validation import (
    ValidationException,
    InvalidURLError
)

from exceptions.monitoring import (
    MonitoringException,
    EndpointNotFoundError
)

__all__ = [
    # Base exceptions
    "UptimeMonitorException",
    "ConfigurationError",

    # Database exceptions
    "DatabaseException",
    "DatabaseConnectionError",
    "DatabaseDuplicateError",
    "PersistenceError",

    # Validation exceptions
    "ValidationException",
    "InvalidURLError",

    # Monitoring exceptions
    "MonitoringException",
    "EndpointNotFoundError"
]
