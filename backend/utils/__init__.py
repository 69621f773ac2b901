"""
TreeSync Backend Utilities Package.

Common utilities shared across all backend modules.
Requires Python 3.11+.
"""

from utils.config import Settings, get_settings
from utils.errors import EventSourceError, ScanError, TreeSyncError
from utils.logger import (
    bind_log_context,
    clear_log_context,
    configure_logging,
    get_logger,
    LoggerMixin,
)

__all__ = [
    "Settings",
    "get_settings",
    "TreeSyncError",
    "ScanError",
    "EventSourceError",
    "bind_log_context",
    "clear_log_context",
    "configure_logging",
    "get_logger",
    "LoggerMixin",
]
