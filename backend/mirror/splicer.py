"""
TreeSync Subtree Splicer.

Installs a freshly scanned subtree at its position in the mirror.
Requires Python 3.11+.
"""

from pathlib import PurePath

from mirror.models import Directory
from utils.logger import get_logger

logger = get_logger("mirror.splicer")


def relative_parts(root_path: str, path: str) -> tuple[str, ...] | None:
    """
    Split ``path`` into segments relative to ``root_path``.

    Returns an empty tuple for the root itself and None when ``path``
    lies outside the root.
    """
    try:
        return PurePath(path).relative_to(PurePath(root_path)).parts
    except ValueError:
        return None


def locate(root: Directory, path: str) -> Directory | None:
    """Find the directory node whose path is ``path``."""
    parts = relative_parts(root.path, path)
    if parts is None:
        return None

    node: Directory | None = root
    for segment in parts:
        node = node.find(segment)
        if node is None:
            return None
    return node


def splice(root: Directory, changed: Directory) -> bool:
    """
    Replace the subtree at ``changed.path`` with ``changed``.

    Walks from ``root`` along the segments of the changed path, one name
    lookup per level, to the parent of the changed node and swaps the
    matching child in place. When the parent holds no directory of that
    name the subtree is added as a new child. Lookup failures are logged
    and leave ``root`` untouched; the root itself is never spliced.

    Args:
        root: Mirror root, mutated in place
        changed: Re-scanned subtree

    Returns:
        True if the mirror was modified
    """
    parts = relative_parts(root.path, changed.path)
    if not parts:
        logger.warning(
            "splice_parent_not_found",
            root=root.path,
            path=changed.path,
            reason="outside root" if parts is None else "path is the root",
        )
        return False

    parent = root
    for segment in parts[:-1]:
        child = parent.find(segment)
        if child is None:
            logger.warning(
                "splice_parent_not_found",
                root=root.path,
                path=changed.path,
                missing=segment,
            )
            return False
        parent = child

    for index, child in enumerate(parent.directories):
        if child.name == changed.name:
            parent.directories[index] = changed
            return True

    # A file may have been replaced by a directory of the same name
    parent.files = [f for f in parent.files if f.name != changed.name]
    parent.directories.append(changed)
    logger.info("splice_inserted_directory", parent=parent.path, name=changed.name)
    return True


def copy_spine(root: Directory, path: str) -> Directory:
    """
    Copy the chain of directories from ``root`` towards ``path``.

    Every node on the chain is shallow-copied so it can be changed
    without touching ``root``; all other subtrees are shared.
    """
    new_root = root.shallow_copy()
    node = new_root
    for segment in relative_parts(root.path, path) or ():
        for index, child in enumerate(node.directories):
            if child.name == segment:
                node.directories[index] = child.shallow_copy()
                node = node.directories[index]
                break
        else:
            break
    return new_root


def set_open(root: Directory, path: str, value: bool) -> bool:
    """Set the ``open`` flag of the directory at ``path`` in place."""
    node = locate(root, path)
    if node is None:
        logger.warning("open_target_not_found", root=root.path, path=path)
        return False
    node.open = value
    return True
