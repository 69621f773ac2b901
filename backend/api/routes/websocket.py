"""
TreeSync WebSocket Routes.

Pushes mirror snapshots to the single attached observer.
Requires Python 3.11+.
"""

import asyncio
import json
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError

from api.dependencies import get_store
from mirror.models import Directory
from utils.logger import LoggerMixin, get_logger

router = APIRouter()
logger = get_logger("api.websocket")


class ObserverHub(LoggerMixin):
    """
    Holds at most one attached observer and pushes snapshots to it.

    Attaching a new observer replaces (and closes) the previous one.
    Pushing with nothing attached is a no-op.
    """

    def __init__(self) -> None:
        """Initialize the hub with no observer."""
        self._observer: WebSocket | None = None
        self._lock = asyncio.Lock()

    async def attach(self, websocket: WebSocket) -> None:
        """
        Accept and register a WebSocket connection as the observer.

        Args:
            websocket: The WebSocket connection to register
        """
        await websocket.accept()
        async with self._lock:
            previous = self._observer
            self._observer = websocket

        if previous is not None:
            self.log.info("observer_replaced")
            try:
                await previous.close()
            except Exception as e:
                self.log.debug("observer_close_failed", error=str(e))
        else:
            self.log.info("observer_attached")

    async def detach(self, websocket: WebSocket | None = None) -> None:
        """
        Unregister the observer.

        Args:
            websocket: Only detach if this is still the attached observer
        """
        async with self._lock:
            if self._observer is None:
                return
            if websocket is not None and websocket is not self._observer:
                return
            self._observer = None
        self.log.info("observer_detached")

    async def push(self, tree: Directory) -> bool:
        """
        Send a full snapshot of ``tree`` to the observer.

        Args:
            tree: Mirror root to serialize

        Returns:
            True if the snapshot was delivered
        """
        async with self._lock:
            websocket = self._observer

        if websocket is None:
            self.log.info("no_observer_attached")
            return False

        try:
            await websocket.send_text(json.dumps(tree.to_dict()))
        except Exception as e:
            self.log.warning("snapshot_send_failed", error=str(e))
            await self.detach(websocket)
            return False

        self.log.debug("snapshot_pushed", path=tree.path)
        return True

    @property
    def has_observer(self) -> bool:
        """Whether an observer is attached."""
        return self._observer is not None


# Global observer hub instance
hub = ObserverHub()


def get_hub() -> ObserverHub:
    """Get the global observer hub."""
    return hub


class SetOpenMessage(BaseModel):
    """Client request to expand or collapse a directory."""

    type: str = "set_open"
    path: str
    open: bool


async def send_to(websocket: WebSocket, message: dict[str, Any]) -> None:
    """
    Send a message to a specific client.

    Args:
        websocket: Target WebSocket connection
        message: The message to send
    """
    try:
        await websocket.send_text(json.dumps(message))
    except Exception as e:
        logger.warning("send_failed", error=str(e))


@router.websocket("")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """
    Observer endpoint.

    The client receives the current mirror on connect and a fresh
    snapshot after every change. Only one client is attached at a time.
    """
    observers = get_hub()
    await observers.attach(websocket)

    store = get_store()
    if store is not None:
        await observers.push(store.snapshot())

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await send_to(websocket, {
                    "type": "error",
                    "message": "Invalid JSON",
                })
                continue

            await handle_client_message(websocket, message)

    except WebSocketDisconnect:
        await observers.detach(websocket)
    except Exception as e:
        logger.error("websocket_error", error=str(e))
        await observers.detach(websocket)


async def handle_client_message(websocket: WebSocket, message: Any) -> None:
    """
    Handle incoming client messages.

    Supported message types:
    - ping: Respond with pong
    - set_open: Set a directory's open flag and push the mirror
    """
    if not isinstance(message, dict):
        await send_to(websocket, {"type": "error", "message": "Expected a JSON object"})
        return

    msg_type = message.get("type", "")

    if msg_type == "ping":
        await send_to(websocket, {"type": "pong"})

    elif msg_type == "set_open":
        try:
            request = SetOpenMessage.model_validate(message)
        except ValidationError as e:
            await send_to(websocket, {"type": "error", "message": str(e)})
            return

        store = get_store()
        if store is None or not store.set_open(request.path, request.open):
            await send_to(websocket, {
                "type": "error",
                "message": f"Unknown directory: {request.path}",
            })
            return

        await get_hub().push(store.snapshot())

    else:
        await send_to(websocket, {
            "type": "error",
            "message": f"Unknown message type: {msg_type}",
        })
