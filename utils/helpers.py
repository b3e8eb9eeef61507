"""
============================================================================
UPTIME MONITOR - HELPERS UTILITY
============================================================================
Time helpers shared by the store, the notifier and the health server.
============================================================================
"""

from datetime import datetime, timezone
from typing import Callable


Clock = Callable[[], datetime]


class TimeHelper:
    """
    Time and date manipulation utilities.

    Timestamps are naive UTC throughout, matching what the database
    columns store and return.
    """

    @staticmethod
    def get_utc_now() -> datetime:
        """Get current UTC datetime (naive)."""
        return datetime.now(timezone.utc).replace(tzinfo=None)

    @staticmethod
    def format_datetime(dt: datetime, fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
        """Format datetime to string."""
        return dt.strftime(fmt)

    @staticmethod
    def format_seconds(seconds: float) -> str:
        """Render a duration without trailing zeros: 15.0 -> '15', 0.5 -> '0.5'."""
        return f"{seconds:g}"

    @staticmethod
    def seconds_to_human_readable(seconds: int) -> str:
        """
        Convert seconds to human readable format.

        Args:
            seconds: Number of seconds

        Returns:
            Human readable string (e.g., "2h 30m 15s")
        """
        if seconds < 60:
            return f"{seconds}s"

        minutes, seconds = divmod(seconds, 60)
        if minutes < 60:
            return f"{minutes}m {seconds}s"

        hours, minutes = divmod(minutes, 60)
        if hours < 24:
            return f"{hours}h {minutes}m {seconds}s"

        days, hours = divmod(hours, 24)
        return f"{days}d {hours}h {minutes}m"

