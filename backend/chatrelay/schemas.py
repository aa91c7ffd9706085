from pydantic import BaseModel, ConfigDict, StrictStr


class InboundChatMessage(BaseModel):
    """Frame sent by a client: ``{"message": ..., "time": ...}``."""

    message: StrictStr
    time: StrictStr
    model_config = ConfigDict(extra="ignore")


class ConnectionsOut(BaseModel):
    count: int
    ids: list[str]


class HealthOut(BaseModel):
    ok: bool
