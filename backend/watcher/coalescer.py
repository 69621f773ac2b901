"""
TreeSync Event Coalescer.

Collapses bursts of filesystem events into one event per interval.
Requires Python 3.11+.
"""

import os
import threading
from collections.abc import Callable

from utils.logger import LoggerMixin
from watcher.events import FsEvent


class Coalescer(LoggerMixin):
    """
    Accumulates events raised on the watchdog thread.

    The consumer drains at most one event per interval. Directory events
    collected in the same interval merge into a single event for their
    deepest common directory, so a burst of activity costs one re-scan.
    File events are only handed out when no directory event is pending.
    """

    def __init__(self, notify: Callable[[], None] | None = None) -> None:
        """
        Initialize the coalescer.

        Args:
            notify: Called (from any thread) whenever there is something to drain
        """
        self._notify = notify
        self._directories: dict[str, FsEvent] = {}
        self._last_file: FsEvent | None = None
        self._lock = threading.Lock()
        self._closed = False
        self._error: BaseException | None = None

    def set_notifier(self, notify: Callable[[], None]) -> None:
        """Set or update the wake-up callback."""
        self._notify = notify

    def add(self, event: FsEvent) -> None:
        """
        Queue an event.

        Args:
            event: Event raised by the filesystem observer
        """
        with self._lock:
            if self._closed:
                return
            if event.is_directory:
                self._directories[event.path] = event
            else:
                self._last_file = event
        self._wake()

    def drain(self) -> FsEvent | None:
        """Take the single event that represents everything pending."""
        with self._lock:
            directories = list(self._directories.values())
            last_file = self._last_file
            self._directories.clear()
            self._last_file = None

        if not directories:
            return last_file
        if len(directories) == 1:
            return directories[0]

        merged = FsEvent.for_directory(os.path.commonpath([d.path for d in directories]))
        self.log.debug("events_coalesced", count=len(directories), path=merged.path)
        return merged

    def reopen(self) -> None:
        """Accept events again after close() or fail()."""
        with self._lock:
            self._closed = False
            self._error = None

    def close(self) -> None:
        """Stop accepting events and wake the consumer."""
        with self._lock:
            self._closed = True
        self._wake()

    def fail(self, error: BaseException) -> None:
        """Record a terminal error of the event source."""
        with self._lock:
            self._error = error
            self._closed = True
        self._wake()

    def _wake(self) -> None:
        if self._notify is not None:
            self._notify()

    @property
    def closed(self) -> bool:
        """Whether the source has been closed or failed."""
        return self._closed

    @property
    def error(self) -> BaseException | None:
        """Terminal error, if the source failed."""
        return self._error

    @property
    def pending_count(self) -> int:
        """Get number of pending events."""
        with self._lock:
            return len(self._directories) + (1 if self._last_file is not None else 0)
