from __future__ import annotations

import uuid
from typing import Any, Optional, Protocol

from fastapi import WebSocket


def new_connection_id() -> str:
    return uuid.uuid4().hex


class Connection(Protocol):
    """One live client connection able to receive named events."""
    connection_id: str

    async def send(self, event: str, data: Any) -> None: ...


class WebSocketConnection:
    """Connection over a FastAPI WebSocket using ``{"event", "data"}`` JSON frames."""

    def __init__(self, websocket: WebSocket, connection_id: Optional[str] = None) -> None:
        self.websocket = websocket
        self.connection_id = connection_id or new_connection_id()

    async def send(self, event: str, data: Any) -> None:
        await self.websocket.send_json({"event": event, "data": data})

    def __repr__(self) -> str:
        return f"WebSocketConnection({self.connection_id})"
