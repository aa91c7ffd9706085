"""Connection handles held by the registry."""

from __future__ import annotations

import uuid
from typing import Protocol

from fastapi import WebSocket, WebSocketDisconnect

from .errors import TransportError


class Connection(Protocol):
    id: str

    async def send(self, text: str) -> None:
        """Deliver one text frame; raise TransportError if the stream is gone."""
        ...


class WebSocketConnection:
    """Non-owning wrapper around a Starlette WebSocket.

    The relay never closes the socket; the endpoint that accepted it does.
    """

    def __init__(self, websocket: WebSocket, connection_id: str | None = None):
        self.websocket = websocket
        self.id = connection_id or str(uuid.uuid4())

    @property
    def remote(self) -> str:
        client = getattr(self.websocket, "client", None)
        if not client:
            return "unknown"
        return f"{client.host}:{client.port}"

    async def send(self, text: str) -> None:
        try:
            await self.websocket.send_text(text)
        except WebSocketDisconnect as exc:
            raise TransportError(self.id, f"disconnected (code {exc.code})") from exc
        except (RuntimeError, OSError) as exc:
            # Starlette raises RuntimeError when sending after close
            raise TransportError(self.id, str(exc) or exc.__class__.__name__) from exc

    def __repr__(self) -> str:
        return f"WebSocketConnection(id={self.id!r}, remote={self.remote!r})"
