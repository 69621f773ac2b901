"""
TreeSync Tree Routes.

Read-only REST access to the current mirror.
Requires Python 3.11+.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import require_store
from mirror.splicer import locate
from mirror.store import MirrorStore

router = APIRouter()


@router.get("")
async def get_tree(
    path: str | None = Query(default=None, description="Absolute path of a directory in the mirror"),
    store: MirrorStore = Depends(require_store),
) -> dict[str, Any]:
    """
    Get the current mirror, or the subtree rooted at ``path``.

    Uses the same shape as the snapshots pushed over the WebSocket.
    """
    root = store.snapshot()
    if path is None:
        return root.to_dict()

    node = locate(root, path)
    if node is None:
        raise HTTPException(status_code=404, detail=f"Directory not found: {path}")
    return node.to_dict()
