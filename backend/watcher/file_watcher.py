"""
TreeSync File Watcher.

Cross-platform file system monitoring using watchdog.
Requires Python 3.11+.
"""

import asyncio
import os
from collections.abc import AsyncIterator
from pathlib import Path

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver
from watchdog.observers.polling import PollingObserver

from utils.config import get_settings
from utils.errors import EventSourceError
from utils.logger import LoggerMixin
from watcher.coalescer import Coalescer
from watcher.events import FsEvent


def _parent(path: str) -> str:
    return os.path.dirname(os.path.normpath(path))


class DirectoryEventHandler(FileSystemEventHandler, LoggerMixin):
    """
    Translates watchdog events into directory change events.

    Entries appearing, disappearing or moving are reported as a change
    of the directory that contains them. A modified directory is reported
    as itself. Content changes of a file are passed on as file events.
    """

    def __init__(self, coalescer: Coalescer) -> None:
        """
        Initialize the handler.

        Args:
            coalescer: Coalescer receiving the translated events
        """
        super().__init__()
        self._coalescer = coalescer

    def on_created(self, event: FileCreatedEvent | DirCreatedEvent) -> None:
        """Handle file/directory creation."""
        path = os.fsdecode(event.src_path)
        self.log.debug("entry_created", path=path, is_directory=event.is_directory)
        self._coalescer.add(FsEvent.for_directory(_parent(path)))

    def on_deleted(self, event: FileDeletedEvent | DirDeletedEvent) -> None:
        """Handle file/directory deletion."""
        path = os.fsdecode(event.src_path)
        self.log.debug("entry_deleted", path=path, is_directory=event.is_directory)
        self._coalescer.add(FsEvent.for_directory(_parent(path)))

    def on_modified(self, event: FileModifiedEvent | DirModifiedEvent) -> None:
        """Handle file/directory modification."""
        path = os.fsdecode(event.src_path)
        if event.is_directory:
            self._coalescer.add(FsEvent.for_directory(path))
        else:
            self._coalescer.add(FsEvent.for_file(path))

    def on_moved(self, event: FileMovedEvent | DirMovedEvent) -> None:
        """Handle file/directory move/rename."""
        src_path = os.fsdecode(event.src_path)
        dest_path = os.fsdecode(event.dest_path)
        self.log.debug("entry_moved", src=src_path, dest=dest_path)

        # Both containing directories changed
        self._coalescer.add(FsEvent.for_directory(_parent(src_path)))
        self._coalescer.add(FsEvent.for_directory(_parent(dest_path)))


class FileWatcher(LoggerMixin):
    """
    Watches a directory tree and yields coalesced change events.

    watchdog runs its observer on a separate thread; events are handed
    over through a Coalescer and consumed with ``async for`` on
    ``events()``, at most one per interval. Stopping the watcher ends the
    iteration; a dead observer raises EventSourceError.
    """

    def __init__(
        self,
        root_path: Path,
        interval_ms: int | None = None,
        recursive: bool | None = None,
        polling: bool | None = None,
        health_check_seconds: float = 1.0,
    ) -> None:
        """
        Initialize the file watcher.

        Args:
            root_path: Root directory to watch
            interval_ms: Coalescing interval in milliseconds
            recursive: Whether to watch subdirectories
            polling: Use the polling observer instead of native events
            health_check_seconds: How often an idle consumer checks the observer
        """
        settings = get_settings()

        self._root_path = root_path
        self._interval = (interval_ms or settings.watcher.interval_ms) / 1000.0
        self._recursive = settings.watcher.recursive if recursive is None else recursive
        self._polling = settings.watcher.polling if polling is None else polling
        self._health_check_seconds = health_check_seconds

        self._coalescer = Coalescer()
        self._handler = DirectoryEventHandler(coalescer=self._coalescer)

        self._observer: BaseObserver | None = None
        self._running = False

    def _create_observer(self) -> BaseObserver:
        if self._polling:
            return PollingObserver(timeout=self._interval)
        return Observer()

    def start(self) -> None:
        """
        Start watching for changes.

        Raises:
            EventSourceError: If the root cannot be watched
        """
        if self._running:
            return

        self._coalescer.reopen()
        self._observer = self._create_observer()
        try:
            self._observer.schedule(
                self._handler,
                str(self._root_path),
                recursive=self._recursive,
            )
            self._observer.start()
        except OSError as e:
            self._observer = None
            raise EventSourceError(f"cannot watch {self._root_path}: {e}") from e
        self._running = True

        self.log.info(
            "file_watcher_started",
            path=str(self._root_path),
            recursive=self._recursive,
            polling=self._polling,
            interval_ms=int(self._interval * 1000),
        )

    def stop(self) -> None:
        """Stop watching and end any running ``events()`` iteration."""
        self._coalescer.close()
        if not self._running:
            return

        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5.0)
            self._observer = None

        self._running = False
        self.log.info("file_watcher_stopped")

    def _check_observer(self) -> None:
        if self._running and self._observer is not None and not self._observer.is_alive():
            self._coalescer.fail(EventSourceError("file system observer stopped unexpectedly"))

    async def events(self) -> AsyncIterator[FsEvent]:
        """
        Yield change events until the watcher stops.

        Raises:
            EventSourceError: If the observer fails
        """
        loop = asyncio.get_running_loop()
        ready = asyncio.Event()

        def notify() -> None:
            if not loop.is_closed():
                loop.call_soon_threadsafe(ready.set)

        self._coalescer.set_notifier(notify)
        if self._coalescer.pending_count or self._coalescer.closed:
            ready.set()

        while True:
            try:
                await asyncio.wait_for(ready.wait(), timeout=self._health_check_seconds)
            except asyncio.TimeoutError:
                self._check_observer()
                continue
            ready.clear()

            if not self._coalescer.closed:
                # Let the rest of a burst arrive before draining
                await asyncio.sleep(self._interval)

            error = self._coalescer.error
            if error is not None:
                if isinstance(error, EventSourceError):
                    raise error
                raise EventSourceError(str(error)) from error

            event = self._coalescer.drain()
            if event is not None:
                yield event
            if self._coalescer.closed:
                return

    @property
    def is_running(self) -> bool:
        """Check if the watcher is running."""
        return self._running

    @property
    def pending_count(self) -> int:
        """Get number of pending events."""
        return self._coalescer.pending_count
