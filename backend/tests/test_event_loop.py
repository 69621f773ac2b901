"""
Tests for the Change Event Loop.

Requires Python 3.11+.
"""

import asyncio
import os
from pathlib import Path

import pytest

from mirror.scanner import Scanner
from mirror.store import MirrorStore
from utils.errors import EventSourceError
from watcher.event_loop import ChangeEventLoop, LoopState
from watcher.events import FsEvent


async def _events(*events: FsEvent):
    for event in events:
        yield event


async def _endless_events():
    await asyncio.Event().wait()
    yield FsEvent.for_directory("/never")


async def _failing_events(*events: FsEvent):
    for event in events:
        yield event
    raise EventSourceError("observer died")


@pytest.fixture
def store(sample_tree: Path) -> MirrorStore:
    """Store holding the initial scan of the sample tree."""
    return MirrorStore(Scanner().scan(str(sample_tree), "r"))


@pytest.fixture
def loop(store: MirrorStore, sink) -> ChangeEventLoop:
    """Event loop pushing into the recording sink."""
    return ChangeEventLoop(store, sink)


class TestChangeEventLoop:
    """Test cases for ChangeEventLoop."""

    def test_initial_scan_shape(self, store: MirrorStore):
        """The mirror starts from the layout on disk."""
        root = store.snapshot()

        assert root.name == "r"
        assert [(f.name, f.code) for f in root.files] == [("a.txt", "hello")]
        assert [(d.name, d.files, d.directories) for d in root.directories] == [("sub", [], [])]

    @pytest.mark.asyncio
    async def test_subdirectory_event_splices(
        self, loop: ChangeEventLoop, store: MirrorStore, sink, sample_tree: Path
    ):
        """A change below the root re-scans only that directory."""
        before = store.snapshot()
        (sample_tree / "sub" / "b.txt").write_text("world")

        handled = await loop.handle_event(FsEvent.for_directory(str(sample_tree / "sub")))

        root = store.snapshot()
        assert handled is True
        assert [(f.name, f.code) for f in root.find("sub").files] == [("b.txt", "world")]
        assert root.files == before.files
        assert sink.trees == [root]

    @pytest.mark.asyncio
    async def test_root_event_replaces_mirror(
        self, loop: ChangeEventLoop, store: MirrorStore, sink, sample_tree: Path
    ):
        """A change of the root re-scans everything and resets open flags."""
        store.set_open(str(sample_tree), True)
        store.set_open(str(sample_tree / "sub"), True)
        (sample_tree / "c.txt").write_text("new")

        await loop.handle_event(FsEvent.for_directory(str(sample_tree)))

        root = store.snapshot()
        assert root.name == "r"
        assert root.open is False
        assert root.find("sub").open is False
        assert {f.name for f in root.files} == {"a.txt", "c.txt"}
        assert sink.trees[-1] is root

    @pytest.mark.asyncio
    async def test_file_events_ignored(self, loop: ChangeEventLoop, store: MirrorStore, sink, sample_tree: Path):
        before = store.snapshot()

        handled = await loop.handle_event(FsEvent.for_file(str(sample_tree / "a.txt")))

        assert handled is False
        assert store.snapshot() is before
        assert sink.trees == []

    @pytest.mark.asyncio
    async def test_event_outside_root_pushes_unchanged(
        self, loop: ChangeEventLoop, store: MirrorStore, sink, tmp_path: Path
    ):
        """Out-of-scope events still refresh the observer."""
        before = store.snapshot()

        handled = await loop.handle_event(FsEvent.for_directory(str(tmp_path / "elsewhere")))

        assert handled is False
        assert store.snapshot() is before
        assert sink.trees == [before]

    @pytest.mark.asyncio
    async def test_scan_error_keeps_mirror(
        self, loop: ChangeEventLoop, store: MirrorStore, sink, sample_tree: Path
    ):
        """A directory that vanished before the re-scan is skipped."""
        before = store.snapshot()

        handled = await loop.handle_event(FsEvent.for_directory(str(sample_tree / "gone")))

        assert handled is False
        assert store.snapshot() is before
        assert sink.trees == []

    @pytest.mark.asyncio
    async def test_push_failure_does_not_stop(self, store: MirrorStore, failing_sink, sample_tree: Path):
        """A failing sink is logged and the loop carries on."""
        loop = ChangeEventLoop(store, failing_sink)
        (sample_tree / "sub" / "b.txt").write_text("world")

        await loop.run(_events(
            FsEvent.for_directory(str(sample_tree / "sub")),
            FsEvent.for_directory(str(sample_tree)),
        ))

        assert loop.processed_count == 2
        assert loop.state == LoopState.STOPPED

    @pytest.mark.asyncio
    async def test_run_processes_events_then_stops(
        self, loop: ChangeEventLoop, store: MirrorStore, sink, sample_tree: Path
    ):
        assert loop.state == LoopState.WATCHING
        (sample_tree / "sub" / "deeper").mkdir()
        (sample_tree / "sub" / "deeper" / "d.txt").write_text("d")

        await loop.run(_events(
            FsEvent.for_file(str(sample_tree / "a.txt")),
            FsEvent.for_directory(str(sample_tree / "sub")),
        ))

        deeper = store.snapshot().find("sub").find("deeper")
        assert deeper.path == os.path.join(str(sample_tree), "sub", "deeper")
        assert [f.code for f in deeper.files] == ["d"]
        assert loop.processed_count == 1
        assert len(sink.trees) == 1
        assert loop.state == LoopState.STOPPED

    @pytest.mark.asyncio
    async def test_event_source_error_stops_loop(
        self, loop: ChangeEventLoop, sink, sample_tree: Path
    ):
        """A failing source ends the loop without raising."""
        await loop.run(_failing_events(FsEvent.for_directory(str(sample_tree / "sub"))))

        assert loop.state == LoopState.STOPPED
        assert loop.processed_count == 1

    @pytest.mark.asyncio
    async def test_undecodable_file_skips_event(self, store: MirrorStore, sink, sample_tree: Path):
        """A strict decode failure is a scan error, and later events still run."""
        loop = ChangeEventLoop(store, sink, Scanner(decode_errors="strict"))
        (sample_tree / "sub" / "bin.dat").write_bytes(b"\xff\xfe\x00")
        (sample_tree / "c.txt").write_text("new")

        await loop.run(_events(
            FsEvent.for_directory(str(sample_tree / "sub")),
            FsEvent.for_directory(str(sample_tree / "sub" / "deeper")),
        ))

        assert loop.processed_count == 0
        assert loop.state == LoopState.STOPPED
        assert store.snapshot().find("sub").files == []

        (sample_tree / "sub" / "bin.dat").unlink()
        assert await loop.handle_event(FsEvent.for_directory(str(sample_tree))) is True
        assert {f.name for f in store.snapshot().files} == {"a.txt", "c.txt"}

    @pytest.mark.asyncio
    async def test_stop_cancels_waiting_loop(self, loop: ChangeEventLoop):
        """stop() interrupts a loop blocked on a quiet event source."""
        task = asyncio.create_task(loop.run(_endless_events()))
        await asyncio.sleep(0.05)
        assert loop.state == LoopState.WATCHING

        loop.stop()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert loop.state == LoopState.STOPPED
