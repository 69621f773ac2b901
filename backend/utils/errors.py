"""
TreeSync Error Types.

Exception hierarchy shared by the mirror and the watcher.
Requires Python 3.11+.
"""

from pathlib import Path


class TreeSyncError(Exception):
    """Base class for all TreeSync errors."""


class ScanError(TreeSyncError):
    """A directory listing or file read failed during a scan."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"cannot scan {self.path}: {reason}")


class EventSourceError(TreeSyncError):
    """The filesystem event source failed and cannot deliver more events."""
