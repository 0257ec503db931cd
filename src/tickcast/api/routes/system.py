"""System health endpoints."""

from __future__ import annotations

import time

from fastapi import APIRouter, Depends

from tickcast.api.deps import get_registry, get_streams
from tickcast.engine.registry import EngineRegistry
from tickcast.feeds.stream import TickStream

router = APIRouter()

_start_time = time.time()


@router.get("/system/health")
def health(
    registry: EngineRegistry = Depends(get_registry),
    streams: dict[str, TickStream] = Depends(get_streams),
) -> dict:
    return {
        "status": "ok",
        "uptimeSeconds": round(time.time() - _start_time, 1),
        "engines": registry.symbols(),
        "streams": [s.status().to_dict() for s in streams.values()],
    }
