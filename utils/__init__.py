"""
Utilities Package for Uptime Monitor

Logging, time helpers and input validation.
"""

from utils.logger import get_logger, setup_logging
from utils.helpers import Clock, TimeHelper
from utils.validators import URLValidator

__all__ = [
    "get_logger",
    "setup_logging",
    "Clock",
    "TimeHelper",
    "URLValidator",
]
