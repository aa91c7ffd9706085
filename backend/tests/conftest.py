import asyncio

import pytest

from chatrelay.errors import TransportError


class DummyConnection:
    """In-memory connection that records what it was sent."""

    def __init__(self, connection_id: str, *, fail: bool = False, delay: float = 0.0, error=None):
        self.id = connection_id
        self.fail = fail
        self.delay = delay
        self.error = error
        self.sent: list[str] = []

    async def send(self, text: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.fail:
            raise TransportError(self.id, "stream closed")
        self.sent.append(text)


@pytest.fixture
def make_connection():
    return DummyConnection
