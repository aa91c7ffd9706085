from fastapi import APIRouter, Depends

from ..config import Settings
from ..deps import get_registry, get_settings
from ..registry import ConnectionRegistry
from ..relay import sender_prefix
from ..schemas import ConnectionsOut, HealthOut

router = APIRouter(tags=["status"])


@router.get("/health", response_model=HealthOut)
def health():
    return {"ok": True}


@router.get("/api/connections", response_model=ConnectionsOut)
def list_connections(
    registry: ConnectionRegistry = Depends(get_registry),
    settings: Settings = Depends(get_settings),
):
    # Only the display prefix is exposed, same as in relayed messages
    ids = sorted(sender_prefix(cid, settings.id_prefix_length) for cid in registry.ids())
    return ConnectionsOut(count=len(ids), ids=ids)
