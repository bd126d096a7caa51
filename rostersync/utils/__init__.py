"""
Utilities package initialization.
"""
from .logger import get_logger, log_performance, log_sync_event, setup_logging
from .time import format_elapsed, format_rfc822, parse_duration, utc_now

__all__ = [
    "get_logger",
    "log_performance",
    "log_sync_event",
    "setup_logging",
    "format_elapsed",
    "format_rfc822",
    "parse_duration",
    "utc_now",
]
