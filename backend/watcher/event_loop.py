"""
TreeSync Change Event Loop.

Turns filesystem change events into mirror updates and snapshot pushes.
Requires Python 3.11+.
"""

import asyncio
import os
from collections.abc import AsyncIterable
from enum import Enum
from typing import Protocol

from mirror.models import Directory
from mirror.scanner import Scanner
from mirror.splicer import relative_parts
from mirror.store import MirrorStore
from utils.errors import EventSourceError, ScanError
from utils.logger import LoggerMixin
from watcher.events import FsEvent


class SnapshotSink(Protocol):
    """Receives full mirror snapshots."""

    async def push(self, tree: Directory) -> bool:
        """Send ``tree``; returns False when nothing was delivered."""
        ...


class LoopState(str, Enum):
    """Lifecycle of the change event loop."""

    WATCHING = "watching"
    STOPPED = "stopped"


class ChangeEventLoop(LoggerMixin):
    """
    Applies directory change events to the mirror.

    Only directory events are handled. An event for the watched root
    re-scans and replaces the whole mirror; an event below it re-scans
    that directory and splices it in. Events outside the root push the
    unchanged mirror. Every handled event ends with a push to the sink.

    Failures of a single event (scan errors, push errors) are logged and
    leave the mirror as it was. Only a failing event source stops the loop.
    """

    def __init__(
        self,
        store: MirrorStore,
        sink: SnapshotSink,
        scanner: Scanner | None = None,
    ) -> None:
        """
        Initialize the event loop.

        Args:
            store: Mirror store holding the initial scan
            sink: Destination for snapshots
            scanner: Scanner used for re-scans
        """
        root = store.snapshot()
        self._root_path = root.path
        self._root_name = root.name
        self._store = store
        self._sink = sink
        self._scanner = scanner or Scanner()
        self._state = LoopState.WATCHING
        self._processed = 0
        self._task: asyncio.Task[None] | None = None

    async def run(self, events: AsyncIterable[FsEvent]) -> None:
        """
        Consume ``events`` until the source ends, fails or stop() is called.

        Args:
            events: Coalesced change events
        """
        self._task = asyncio.current_task()
        self.log.info("event_loop_started", root=self._root_path)
        try:
            async for event in events:
                await self.handle_event(event)
        except EventSourceError as e:
            self.log.error("event_source_failed", error=str(e))
        finally:
            self._state = LoopState.STOPPED
            self.log.info("event_loop_stopped", processed=self._processed)

    def stop(self) -> None:
        """Cancel a running loop."""
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def handle_event(self, event: FsEvent) -> bool:
        """
        Process a single change event.

        Args:
            event: The change to apply

        Returns:
            True if the mirror was rebuilt for this event
        """
        if not event.is_directory:
            return False

        parts = relative_parts(self._root_path, os.path.normpath(event.path))
        if parts is None:
            self.log.debug("event_outside_root", path=event.path)
            await self.push()
            return False

        try:
            if not parts:
                root = await asyncio.to_thread(self._scanner.scan, self._root_path, self._root_name)
                self._store.replace(root)
            else:
                path = os.path.join(self._root_path, *parts)
                changed = await asyncio.to_thread(self._scanner.scan, path, event.name or parts[-1])
                self._store.splice(changed)
        except ScanError as e:
            self.log.warning("rescan_failed", path=e.path, event_path=event.path, error=e.reason)
            return False

        self._processed += 1
        await self.push()
        return True

    async def push(self) -> bool:
        """Send the current mirror to the sink."""
        try:
            return await self._sink.push(self._store.snapshot())
        except Exception as e:
            self.log.warning("snapshot_push_failed", error=str(e))
            return False

    @property
    def state(self) -> LoopState:
        """Current loop state."""
        return self._state

    @property
    def processed_count(self) -> int:
        """Number of events that rebuilt part of the mirror."""
        return self._processed
