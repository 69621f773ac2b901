"""
TreeSync Filesystem Events.

Event records handed from the watcher to the change event loop.
Requires Python 3.11+.
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FsEvent:
    """A change observed under the watched root."""

    path: str
    is_directory: bool
    name: str

    @classmethod
    def for_directory(cls, path: str) -> "FsEvent":
        """Build a directory event named after the last path segment."""
        path = os.path.normpath(path)
        return cls(path=path, is_directory=True, name=os.path.basename(path) or path)

    @classmethod
    def for_file(cls, path: str) -> "FsEvent":
        """Build a file event named after the last path segment."""
        path = os.path.normpath(path)
        return cls(path=path, is_directory=False, name=os.path.basename(path))
