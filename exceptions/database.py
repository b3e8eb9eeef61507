"""
Database Exception Classes for Uptime Monitor

Provides specialized exceptions for database-related errors
including connection issues, failed writes, and duplicate records.
"""

from __future__ import annotations

from typing import Any, Optional

from exceptions.base import UptimeMonitorException


class DatabaseException(UptimeMonitorException):
    """
    Base Database Exception

    Parent class for all database-related exceptions.
    """

    default_error_code = 2000
    default_recoverable = False

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if table:
            self.details["table"] = table


class DatabaseConnectionError(DatabaseException):
    """
    Database Connection Error

    Raised when unable to establish or maintain database connection.
    """

    default_error_code = 2001

    def __init__(
        self,
        message: str = "Unable to connect to database",
        url: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if url:
            self.details["url"] = url


class PersistenceError(DatabaseException):
    """
    Persistence Error

    Raised when a write to the observation log fails. The scheduler
    logs it and moves on to the next endpoint; the endpoint's state
    stays stale until its next successful write.
    """

    default_error_code = 2002
    default_recoverable = True

    def __init__(
        self,
        message: str = "Failed to persist record",
        endpoint_id: Optional[int] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if endpoint_id is not None:
            self.details["endpoint_id"] = endpoint_id


class DatabaseDuplicateError(DatabaseException):
    """
    Database Duplicate Error

    Raised when attempting to insert a duplicate record.
    """

    default_error_code = 2004
    default_recoverable = True

    def __init__(
        self,
        message: str = "Record already exists",
        entity_type: Optional[str] = None,
        field: Optional[str] = None,
        value: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if entity_type:
            self.details["entity_type"] = entity_type

        if field:
            self.details["field"] = field

        if value:
            self.details["value"] = value[:50] if len(value) > 50 else value
