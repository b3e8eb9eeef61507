"""
Monitoring Exception Classes for Uptime Monitor

Probe failures are never exceptions: they are recorded as DOWN
observations. These cover the remaining failure modes of the
monitoring core.
"""

from __future__ import annotations

from typing import Any, Optional

from exceptions.base import UptimeMonitorException


class MonitoringException(UptimeMonitorException):
    """Base class for monitoring-core errors."""

    default_error_code = 4000


class EndpointNotFoundError(MonitoringException):
    """Raised when an operation names an endpoint the registry does not know."""

    default_error_code = 4004

    def __init__(
        self,
        message: str = "Endpoint not found",
        endpoint_id: Optional[int] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if endpoint_id is not None:
            self.details["endpoint_id"] = endpoint_id
