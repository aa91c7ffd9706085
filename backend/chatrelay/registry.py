"""Registry of live connections and broadcast fan-out."""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from .connection import Connection
from .errors import TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BroadcastResult:
    delivered: tuple[str, ...] = ()
    failed: tuple[str, ...] = ()

    @property
    def attempted(self) -> int:
        return len(self.delivered) + len(self.failed)


class ConnectionRegistry:
    """Set of open connections keyed by identifier.

    Mutations copy the current mapping, change the copy and swap it in under a
    lock. Readers grab the current snapshot and iterate it without locking, so
    a broadcast never sees a half-applied add or remove. The lock is a
    ``threading.Lock`` because add/remove may be called from worker threads as
    well as from the event loop; it is never held across an ``await``.
    """

    def __init__(self, send_timeout: float = 5.0):
        self.send_timeout = send_timeout
        self._lock = threading.Lock()
        self._snapshot: Mapping[str, Connection] = MappingProxyType({})

    def add(self, connection: Connection) -> None:
        with self._lock:
            updated = dict(self._snapshot)
            updated[connection.id] = connection
            self._snapshot = MappingProxyType(updated)

    def remove(self, connection: Connection | str) -> bool:
        connection_id = connection if isinstance(connection, str) else connection.id
        with self._lock:
            if connection_id not in self._snapshot:
                return False
            updated = dict(self._snapshot)
            del updated[connection_id]
            self._snapshot = MappingProxyType(updated)
        return True

    def get(self, connection_id: str) -> Connection | None:
        return self._snapshot.get(connection_id)

    def ids(self) -> list[str]:
        return list(self._snapshot)

    def __len__(self) -> int:
        return len(self._snapshot)

    def __contains__(self, item: object) -> bool:
        connection_id = item if isinstance(item, str) else getattr(item, "id", None)
        return connection_id in self._snapshot

    async def _send_one(self, connection: Connection, text: str) -> bool:
        try:
            await asyncio.wait_for(connection.send(text), timeout=self.send_timeout)
        except TransportError as exc:
            logger.warning("Send to %s failed: %s", connection.id, exc.reason)
            return False
        except asyncio.TimeoutError:
            logger.warning(
                "Send to %s timed out after %.1fs; skipping", connection.id, self.send_timeout
            )
            return False
        except Exception:
            logger.exception("Unexpected error sending to %s", connection.id)
            return False
        return True

    async def broadcast_except(self, sender_id: str, text: str) -> BroadcastResult:
        """Send *text* to every registered connection other than *sender_id*.

        Recipients are attempted concurrently; one failing or slow recipient
        does not prevent delivery to the others. Failed recipients stay
        registered until the transport reports that they closed.
        """

        recipients = [c for cid, c in self._snapshot.items() if cid != sender_id]
        if not recipients:
            return BroadcastResult()

        outcomes = await asyncio.gather(*(self._send_one(c, text) for c in recipients))

        delivered: list[str] = []
        failed: list[str] = []
        for connection, ok in zip(recipients, outcomes):
            (delivered if ok else failed).append(connection.id)
        return BroadcastResult(delivered=tuple(delivered), failed=tuple(failed))
