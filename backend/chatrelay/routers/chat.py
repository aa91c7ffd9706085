import logging
from contextlib import suppress

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from ..config import Settings
from ..connection import WebSocketConnection
from ..deps import get_relay, get_settings
from ..relay import RelayHandler

logger = logging.getLogger(__name__)


async def chat_socket(
    websocket: WebSocket,
    relay: RelayHandler = Depends(get_relay),
    settings: Settings = Depends(get_settings),
):
    origin = websocket.headers.get("origin")
    if not settings.origin_allowed(origin):
        logger.warning("Rejected WebSocket handshake from origin %r", origin)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    connection = WebSocketConnection(websocket)
    relay.on_open(connection)

    code = None
    try:
        while True:
            event = await websocket.receive()
            if event["type"] == "websocket.disconnect":
                code = event.get("code")
                break
            payload = event.get("text")
            if payload is None:
                payload = event.get("bytes") or b""
            await relay.on_message(connection, payload)
    except WebSocketDisconnect as exc:
        code = exc.code
    except Exception as exc:
        relay.on_transport_error(connection, exc)
        code = status.WS_1011_INTERNAL_ERROR
        with suppress(RuntimeError):
            await websocket.close(code=code)
    finally:
        relay.on_close(connection, code)


def build_router(path: str = "/chat") -> APIRouter:
    """Router exposing the relay WebSocket at *path*."""

    router = APIRouter(tags=["chat"])
    router.add_api_websocket_route(path, chat_socket, name="chat")
    return router
