"""Chat relay: parse an inbound frame, format it, fan it out to the others."""

from __future__ import annotations

import asyncio
import logging

from pydantic import ValidationError

from .config import Settings
from .connection import Connection
from .errors import ParseError, TransportError
from .registry import BroadcastResult, ConnectionRegistry
from .schemas import InboundChatMessage

logger = logging.getLogger(__name__)

PARSE_ERROR_NOTICE = "[server] message dropped: expected {\"message\": string, \"time\": string}"


def parse_inbound(raw: str | bytes, max_chars: int | None = None) -> InboundChatMessage:
    """Validate a raw frame as an :class:`InboundChatMessage`.

    Raises :class:`ParseError` for malformed JSON, a non-object payload, a
    missing or non-string ``message``/``time``, or an oversized frame.
    """

    if max_chars is not None and len(raw) > max_chars:
        raise ParseError(f"frame longer than {max_chars} characters", raw)
    try:
        return InboundChatMessage.model_validate_json(raw)
    except ValidationError as exc:
        fields = ", ".join(
            ".".join(str(p) for p in err["loc"]) or err["type"] for err in exc.errors()
        )
        raise ParseError(f"invalid chat message ({fields})", raw) from exc


def sender_prefix(connection_id: str, length: int = 8) -> str:
    # slicing never raises; ids shorter than `length` come back whole
    return str(connection_id)[:length]


def format_outbound(time: str, sender_id: str, message: str, prefix_length: int = 8) -> str:
    return f"[{time}] {sender_prefix(sender_id, prefix_length)}: {message}"


class RelayHandler:
    """Lifecycle callbacks a transport invokes for each connection."""

    def __init__(self, registry: ConnectionRegistry, settings: Settings | None = None):
        self.registry = registry
        self.settings = settings or Settings()

    def on_open(self, connection: Connection) -> None:
        self.registry.add(connection)
        logger.info("Client connected: %s (%d connected)", connection.id, len(self.registry))

    async def on_message(self, connection: Connection, text: str | bytes) -> BroadcastResult | None:
        try:
            inbound = parse_inbound(text, self.settings.max_message_chars)
        except ParseError as exc:
            logger.warning("Dropping frame from %s: %s (%r)", connection.id, exc.reason, exc.excerpt)
            if self.settings.notify_parse_errors:
                await self._notify(connection, PARSE_ERROR_NOTICE)
            return None

        formatted = format_outbound(
            inbound.time, connection.id, inbound.message, self.settings.id_prefix_length
        )
        result = await self.registry.broadcast_except(connection.id, formatted)
        if result.failed:
            logger.info(
                "Relayed message from %s to %d of %d recipients",
                connection.id,
                len(result.delivered),
                result.attempted,
            )
        return result

    def on_close(self, connection: Connection, code: int | None = None) -> None:
        removed = self.registry.remove(connection)
        if removed:
            logger.info(
                "Client disconnected: %s (code %s, %d connected)",
                connection.id,
                code,
                len(self.registry),
            )
        else:
            logger.debug("Close for %s ignored; not registered", connection.id)

    def on_transport_error(self, connection: Connection, error: BaseException) -> None:
        logger.warning("Transport error on %s: %s", connection.id, error, exc_info=error)

    async def _notify(self, connection: Connection, text: str) -> None:
        try:
            await asyncio.wait_for(connection.send(text), timeout=self.settings.send_timeout)
        except TransportError as exc:
            logger.warning("Could not notify %s: %s", connection.id, exc.reason)
        except asyncio.TimeoutError:
            logger.warning("Could not notify %s: send timed out", connection.id)
        except Exception:
            logger.exception("Unexpected error notifying %s", connection.id)
