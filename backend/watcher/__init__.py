"""
TreeSync File Watcher Package.

File system monitoring and the change event loop.
Requires Python 3.11+.
"""

from watcher.coalescer import Coalescer
from watcher.event_loop import ChangeEventLoop, LoopState, SnapshotSink
from watcher.events import FsEvent
from watcher.file_watcher import FileWatcher

__all__ = [
    "Coalescer",
    "ChangeEventLoop",
    "LoopState",
    "SnapshotSink",
    "FsEvent",
    "FileWatcher",
]
