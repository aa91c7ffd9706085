"""Error types raised by the relay core."""


class RelayError(Exception):
    pass


class ParseError(RelayError):
    """Inbound frame is not a valid chat message."""

    def __init__(self, reason: str, raw: str | bytes | None = None):
        super().__init__(reason)
        self.reason = reason
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        self.excerpt = (raw or "")[:80]


class TransportError(RelayError):
    """Sending to a connection failed because its stream is closed or broken."""

    def __init__(self, connection_id: str, reason: str):
        super().__init__(f"{connection_id}: {reason}")
        self.connection_id = connection_id
        self.reason = reason
