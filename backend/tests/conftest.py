"""
TreeSync Test Configuration.

Pytest fixtures and configuration.
Requires Python 3.11+.
"""

from pathlib import Path
from typing import Generator

import pytest

from mirror.models import Directory
from utils.config import get_settings


class RecordingSink:
    """Snapshot sink that keeps every pushed tree."""

    def __init__(self, fail: bool = False) -> None:
        self.trees: list[Directory] = []
        self.fail = fail

    async def push(self, tree: Directory) -> bool:
        if self.fail:
            raise ConnectionError("observer went away")
        self.trees.append(tree)
        return True


class FakeWebSocket:
    """Stand-in for a Starlette WebSocket."""

    def __init__(self, fail: bool = False) -> None:
        self.accepted = False
        self.closed = False
        self.sent: list[str] = []
        self.fail = fail

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise RuntimeError("connection lost")
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def fresh_settings() -> Generator[None, None, None]:
    """Re-read settings from the environment for every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def sample_tree(tmp_path: Path) -> Path:
    """
    Create the basic watched root.

    r/
      a.txt   ("hello")
      sub/
    """
    root = tmp_path / "r"
    root.mkdir()
    (root / "a.txt").write_text("hello")
    (root / "sub").mkdir()
    return root


@pytest.fixture
def nested_tree(tmp_path: Path) -> Path:
    """
    Create a deeper watched root.

    project/
      README.md
      src/
        main.py
        pkg/
          __init__.py
          util.py
      docs/
        index.md
      empty/
    """
    root = tmp_path / "project"
    (root / "src" / "pkg").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "empty").mkdir()
    (root / "README.md").write_text("# project\n")
    (root / "src" / "main.py").write_text("print('main')\n")
    (root / "src" / "pkg" / "__init__.py").write_text("")
    (root / "src" / "pkg" / "util.py").write_text("def util():\n    return 1\n")
    (root / "docs" / "index.md").write_text("docs\n")
    return root


@pytest.fixture
def sink() -> RecordingSink:
    """Sink recording pushed snapshots."""
    return RecordingSink()


@pytest.fixture
def failing_sink() -> RecordingSink:
    """Sink whose every push raises."""
    return RecordingSink(fail=True)


@pytest.fixture
def websocket_factory():
    """Factory for fake WebSocket connections."""
    return FakeWebSocket
