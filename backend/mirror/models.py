"""
TreeSync Mirror Data Models.

Directory and file nodes of the in-memory mirror.
Field names double as the wire format sent to observers.
Requires Python 3.11+.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class File:
    """A file leaf holding the whole content read at scan time."""

    path: str
    name: str
    code: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "path": self.path,
            "name": self.name,
            "code": self.code,
        }


@dataclass(slots=True)
class Directory:
    """
    A directory node owning its child directories and files.

    Children keep the order the filesystem listed them in. The ``open``
    flag belongs to the consuming view and is reset whenever the node is
    rebuilt by a scan.
    """

    path: str
    name: str
    directories: list["Directory"] = field(default_factory=list)
    files: list[File] = field(default_factory=list)
    open: bool = False

    def find(self, name: str) -> "Directory | None":
        """Return the child directory called ``name``, if any."""
        for child in self.directories:
            if child.name == name:
                return child
        return None

    def shallow_copy(self) -> "Directory":
        """Copy this node with fresh child lists sharing the same children."""
        return Directory(
            path=self.path,
            name=self.name,
            directories=list(self.directories),
            files=list(self.files),
            open=self.open,
        )

    def walk(self):
        """Yield this directory and every descendant directory, depth first."""
        yield self
        for child in self.directories:
            yield from child.walk()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "path": self.path,
            "name": self.name,
            "directories": [d.to_dict() for d in self.directories],
            "files": [f.to_dict() for f in self.files],
            "open": self.open,
        }
