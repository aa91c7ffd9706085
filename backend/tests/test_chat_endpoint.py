import asyncio
import time

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from chatrelay.config import Settings
from chatrelay.connection import WebSocketConnection
from chatrelay.errors import TransportError
from chatrelay.main import create_app


def _wait_for_count(client, expected, timeout=2.0):
    deadline = time.monotonic() + timeout
    while True:
        count = client.get("/api/connections").json()["count"]
        if count == expected or time.monotonic() > deadline:
            return count
        time.sleep(0.02)


def test_health():
    with TestClient(create_app(Settings())) as client:
        assert client.get("/health").json() == {"ok": True}


def test_relay_between_three_clients():
    app = create_app(Settings())
    with TestClient(app) as client:
        with client.websocket_connect("/chat") as a, client.websocket_connect(
            "/chat"
        ) as b, client.websocket_connect("/chat") as c:
            assert _wait_for_count(client, 3) == 3
            ids = app.state.registry.ids()
            assert len(ids) == 3

            a.send_json({"message": "from a", "time": "10:00:00"})
            line_b = b.receive_text()
            line_c = c.receive_text()
            assert line_b == line_c
            assert line_b.startswith("[10:00:00] ")
            assert line_b.endswith(": from a")
            prefix = line_b[len("[10:00:00] "):].split(":", 1)[0]
            assert len(prefix) == 8

            # a was not echoed its own message: the next thing it sees is c's
            c.send_json({"message": "from c", "time": "10:00:01"})
            assert a.receive_text().endswith(": from c")
            assert b.receive_text().endswith(": from c")

        assert _wait_for_count(client, 0) == 0


def test_malformed_frame_is_dropped_and_connection_survives():
    with TestClient(create_app(Settings())) as client:
        with client.websocket_connect("/chat") as sender, client.websocket_connect("/chat") as peer:
            sender.send_text('{"message":"hi"}')
            sender.send_text("definitely not json")
            sender.send_text('{"message":"hi","time":"10:00:00"}')

            line = peer.receive_text()
            assert line.startswith("[10:00:00] ")
            assert line.endswith(": hi")
            assert _wait_for_count(client, 2) == 2


def test_parse_error_notice_when_enabled():
    with TestClient(create_app(Settings(notify_parse_errors=True))) as client:
        with client.websocket_connect("/chat") as sender:
            sender.send_text('{"time":"10:00:00"}')
            assert sender.receive_text().startswith("[server] message dropped")


def test_stream_ended_by_error_is_closed_and_removed(monkeypatch):
    app = create_app(Settings())

    async def broken_on_message(connection, text):
        raise OSError("broken pipe")

    monkeypatch.setattr(app.state.relay, "on_message", broken_on_message)

    with TestClient(app) as client:
        with client.websocket_connect("/chat") as ws:
            assert _wait_for_count(client, 1) == 1
            ws.send_json({"message": "hi", "time": "10:00:00"})
            with pytest.raises(WebSocketDisconnect) as excinfo:
                ws.receive_text()
            assert excinfo.value.code == 1011

        assert _wait_for_count(client, 0) == 0
    assert len(app.state.registry) == 0


def test_custom_path():
    with TestClient(create_app(Settings(chat_path="/relay"))) as client:
        with client.websocket_connect("/relay") as a, client.websocket_connect("/relay") as b:
            a.send_json({"message": "ok", "time": "t"})
            assert b.receive_text().endswith(": ok")


def test_disallowed_origin_is_rejected():
    settings = Settings(allowed_origins=("http://chat.example",))
    with TestClient(create_app(settings)) as client:
        with pytest.raises(WebSocketDisconnect) as excinfo:
            with client.websocket_connect("/chat", headers={"origin": "http://evil.example"}):
                pass
        assert excinfo.value.code == 1008

        with client.websocket_connect("/chat", headers={"origin": "http://chat.example"}):
            assert _wait_for_count(client, 1) == 1


def test_connections_endpoint_lists_prefixes():
    with TestClient(create_app(Settings())) as client:
        with client.websocket_connect("/chat"):
            assert _wait_for_count(client, 1) == 1
            body = client.get("/api/connections").json()
            assert body["count"] == 1
            assert len(body["ids"][0]) == 8


class _ClosedSocket:
    client = None

    def __init__(self, error):
        self.error = error

    async def send_text(self, text):
        raise self.error


@pytest.mark.parametrize(
    "error",
    [
        RuntimeError('Cannot call "send" once a close message has been sent.'),
        WebSocketDisconnect(code=1006),
        ConnectionResetError("reset"),
    ],
)
def test_websocket_connection_wraps_send_failures(error):
    conn = WebSocketConnection(_ClosedSocket(error), connection_id="abc")

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(conn.send("hi"))

    assert excinfo.value.connection_id == "abc"
    assert conn.remote == "unknown"


def test_websocket_connection_ids_are_unique():
    ids = {WebSocketConnection(_ClosedSocket(None)).id for _ in range(50)}
    assert len(ids) == 50
    assert all(len(i) == 36 for i in ids)
