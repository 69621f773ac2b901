"""
TreeSync Recursive Scanner.

Builds a fresh mirror subtree from a directory on disk.
Requires Python 3.11+.
"""

import fnmatch
import os
from pathlib import Path

from mirror.models import Directory, File
from utils.config import get_settings
from utils.errors import ScanError
from utils.logger import LoggerMixin


class Scanner(LoggerMixin):
    """
    Reads a directory tree into Directory/File nodes.

    Each directory level is collected first (files read in full,
    subdirectories added as empty placeholders) and the placeholders are
    then populated recursively. Any listing or read failure aborts the
    whole scan with a ScanError; no partial tree is ever returned.
    """

    def __init__(
        self,
        encoding: str | None = None,
        decode_errors: str | None = None,
        ignore_patterns: list[str] | None = None,
    ) -> None:
        """
        Initialize the scanner.

        Args:
            encoding: Encoding used to decode file contents
            decode_errors: Codec error handler for undecodable bytes
            ignore_patterns: Glob patterns matched against entry names
        """
        settings = get_settings()

        self._encoding = encoding or settings.mirror.encoding
        self._decode_errors = decode_errors or settings.mirror.decode_errors
        if ignore_patterns is None:
            ignore_patterns = settings.mirror.ignore_patterns
        self._ignore_patterns = list(ignore_patterns)

    def _should_ignore(self, name: str) -> bool:
        """Check if an entry name matches an ignore pattern."""
        return any(fnmatch.fnmatch(name, pattern) for pattern in self._ignore_patterns)

    def scan(self, path: Path | str, name: str) -> Directory:
        """
        Scan ``path`` recursively.

        Args:
            path: Directory to read
            name: Name given to the resulting root node

        Returns:
            Fully populated Directory

        Raises:
            ScanError: If any directory cannot be listed or any file read
        """
        directory = Directory(path=str(path), name=name)
        self._populate(directory)
        self.log.debug(
            "scan_completed",
            path=directory.path,
            directories=len(directory.directories),
            files=len(directory.files),
        )
        return directory

    def _populate(self, directory: Directory) -> None:
        """Fill ``directory`` in place from disk."""
        directories, files = self._read_level(directory.path)
        directory.directories = directories
        directory.files = files

        for child in directory.directories:
            self._populate(child)

    def _read_level(self, path: str) -> tuple[list[Directory], list[File]]:
        """List one directory and read its files."""
        directories: list[Directory] = []
        files: list[File] = []

        try:
            with os.scandir(path) as entries:
                listing = list(entries)
        except OSError as e:
            raise ScanError(path, f"cannot list directory: {e.strerror or e}") from e

        for entry in listing:
            if self._should_ignore(entry.name):
                continue

            child_path = os.path.join(path, entry.name)
            try:
                # Symlinked directories are not followed to avoid cycles
                is_dir = entry.is_dir(follow_symlinks=False)
                is_file = not is_dir and entry.is_file()
            except OSError as e:
                raise ScanError(child_path, f"cannot stat entry: {e.strerror or e}") from e

            if is_dir:
                directories.append(Directory(path=child_path, name=entry.name))
            elif is_file:
                files.append(File(path=child_path, name=entry.name, code=self._read_file(child_path)))

        return directories, files

    def _read_file(self, path: str) -> str:
        """Read a whole file as text."""
        try:
            with open(path, "rb") as fh:
                content = fh.read()
        except OSError as e:
            raise ScanError(path, f"cannot read file: {e.strerror or e}") from e

        try:
            return content.decode(self._encoding, errors=self._decode_errors)
        except (UnicodeDecodeError, LookupError) as e:
            raise ScanError(path, f"cannot decode file: {e}") from e


def scan(path: Path | str, name: str) -> Directory:
    """Scan ``path`` with a scanner built from the current settings."""
    return Scanner().scan(path, name)
