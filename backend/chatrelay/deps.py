from fastapi.requests import HTTPConnection

from .config import Settings
from .registry import ConnectionRegistry
from .relay import RelayHandler


# Objects are created once in create_app() and stored on app.state
def get_settings(conn: HTTPConnection) -> Settings:
    return conn.app.state.settings


def get_registry(conn: HTTPConnection) -> ConnectionRegistry:
    return conn.app.state.registry


def get_relay(conn: HTTPConnection) -> RelayHandler:
    return conn.app.state.relay
