"""
TreeSync Mirror Package.

In-memory mirror of a directory tree: models, scanning and splicing.
Requires Python 3.11+.
"""

from mirror.models import Directory, File
from mirror.scanner import Scanner, scan
from mirror.splicer import splice
from mirror.store import MirrorStore

__all__ = [
    "Directory",
    "File",
    "Scanner",
    "scan",
    "splice",
    "MirrorStore",
]
