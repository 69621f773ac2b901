"""
TreeSync Mirror Store.

Owns the published mirror and swaps in updated copies.
Requires Python 3.11+.
"""

import threading

from mirror.models import Directory
from mirror.splicer import copy_spine, set_open, splice
from utils.logger import LoggerMixin


class MirrorStore(LoggerMixin):
    """
    Holds the current mirror root behind a lock.

    A published tree is never mutated again. Updates copy the chain of
    directories leading to the change, apply it to that private copy and
    then swap the root reference, so readers always see a complete tree.
    """

    def __init__(self, root: Directory) -> None:
        """
        Initialize the store.

        Args:
            root: Mirror produced by the initial scan
        """
        self._root = root
        self._lock = threading.Lock()
        self._generation = 0

    def snapshot(self) -> Directory:
        """Return the currently published mirror."""
        with self._lock:
            return self._root

    @property
    def generation(self) -> int:
        """Number of updates published since startup."""
        return self._generation

    def replace(self, root: Directory) -> None:
        """Publish a whole new mirror."""
        with self._lock:
            self._root = root
            self._generation += 1
        self.log.info("mirror_replaced", path=root.path)

    def splice(self, changed: Directory) -> bool:
        """
        Install a re-scanned subtree.

        Returns:
            True if a new mirror was published
        """
        with self._lock:
            candidate = copy_spine(self._root, changed.path)
            if not splice(candidate, changed):
                return False
            self._root = candidate
            self._generation += 1
        self.log.debug("mirror_spliced", path=changed.path)
        return True

    def set_open(self, path: str, value: bool) -> bool:
        """
        Set the UI ``open`` flag of one directory.

        Returns:
            True if a new mirror was published
        """
        with self._lock:
            candidate = copy_spine(self._root, path)
            if not set_open(candidate, path, value):
                return False
            self._root = candidate
            self._generation += 1
        self.log.debug("mirror_open_changed", path=path, open=value)
        return True
