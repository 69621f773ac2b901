"""
TreeSync API Dependencies.

Shared dependencies for FastAPI routes.
Requires Python 3.11+.
"""

from typing import Any

from fastapi import HTTPException

from mirror.store import MirrorStore
from watcher.event_loop import ChangeEventLoop


# Shared state - populated by main.py lifespan
_state: dict[str, Any] = {}


def set_store(store: MirrorStore | None) -> None:
    """Set the shared mirror store."""
    _state["store"] = store


def get_store() -> MirrorStore | None:
    """Get the shared mirror store."""
    return _state.get("store")


def set_event_loop(event_loop: ChangeEventLoop | None) -> None:
    """Set the running change event loop."""
    _state["event_loop"] = event_loop


def get_event_loop() -> ChangeEventLoop | None:
    """Get the running change event loop."""
    return _state.get("event_loop")


def require_store() -> MirrorStore:
    """
    Dependency that requires the mirror to be loaded.

    Raises HTTPException if the initial scan has not completed.
    """
    store = get_store()
    if store is None:
        raise HTTPException(
            status_code=503,
            detail="Mirror not loaded",
        )
    return store
