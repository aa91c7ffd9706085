"""Runtime settings loaded from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent / ".env")

logger = logging.getLogger(__name__)

ANY_ORIGIN = "*"


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 8080
    chat_path: str = "/chat"
    # "*" accepts every origin, including handshakes without an Origin header
    allowed_origins: tuple[str, ...] = (ANY_ORIGIN,)
    cors_origins: tuple[str, ...] = (ANY_ORIGIN,)
    send_timeout: float = 5.0
    id_prefix_length: int = 8
    max_message_chars: int = 4096
    notify_parse_errors: bool = False
    log_level: str = "INFO"

    def origin_allowed(self, origin: str | None) -> bool:
        if ANY_ORIGIN in self.allowed_origins:
            return True
        if not origin:
            return False
        return origin.rstrip("/") in {o.rstrip("/") for o in self.allowed_origins}


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s: %r; using %s", name, raw, default)
        return default
    if value < minimum:
        logger.warning("%s must be >= %s, got %s; using %s", name, minimum, value, default)
        return default
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid number for %s: %r; using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("%s must be positive, got %s; using %s", name, value, default)
        return default
    return value


def _split_origins(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return (ANY_ORIGIN,)
    origins = tuple(o.strip() for o in raw.split(",") if o.strip())
    return origins or (ANY_ORIGIN,)


def _normalize_path(raw: str | None) -> str:
    path = (raw or "/chat").strip() or "/chat"
    if not path.startswith("/"):
        path = "/" + path
    return path


def load_settings() -> Settings:
    """Build :class:`Settings` from ``CHAT_*`` environment variables."""

    return Settings(
        host=os.getenv("CHAT_HOST", "0.0.0.0"),
        port=_env_int("CHAT_PORT", 8080, minimum=1),
        chat_path=_normalize_path(os.getenv("CHAT_PATH")),
        allowed_origins=_split_origins(os.getenv("CHAT_ALLOWED_ORIGINS")),
        cors_origins=_split_origins(os.getenv("CORS_ORIGINS")),
        send_timeout=_env_float("CHAT_SEND_TIMEOUT", 5.0),
        id_prefix_length=_env_int("CHAT_ID_PREFIX_LENGTH", 8, minimum=1),
        max_message_chars=_env_int("CHAT_MAX_MESSAGE_CHARS", 4096, minimum=1),
        notify_parse_errors=_env_bool("CHAT_NOTIFY_PARSE_ERRORS", False),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
