"""Engine endpoints: tick ingestion, forecasts and inspection per symbol."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from tickcast.api.deps import get_registry
from tickcast.engine.core import TickPredictionEngine
from tickcast.engine.registry import EngineRegistry
from tickcast.models.tick import Tick

router = APIRouter()


class TickIn(BaseModel):
    price: float = Field(gt=0, allow_inf_nan=False)
    volume: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    timestamp: int | None = None  # epoch ms; server time when omitted
    bid: float | None = Field(default=None, gt=0)
    ask: float | None = Field(default=None, gt=0)
    source: str | None = None


class PredictionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    horizon_ms: int | None = Field(default=None, gt=0, alias="horizonMs")


@contextmanager
def _engine(registry: EngineRegistry, symbol: str) -> Iterator[TickPredictionEngine]:
    try:
        with registry.locked(symbol) as engine:
            yield engine
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown symbol {symbol.upper()}") from None


@router.get("/symbols")
def list_symbols(registry: EngineRegistry = Depends(get_registry)) -> dict:
    return {"symbols": registry.symbols()}


@router.post("/symbols/{symbol}", status_code=201)
def create_symbol(symbol: str, registry: EngineRegistry = Depends(get_registry)) -> dict:
    """Create (or fetch) the engine for a symbol."""
    engine = registry.create(symbol)
    return {"symbol": engine.symbol, "tickCount": engine.get_tick_count()}


@router.post("/symbols/{symbol}/ticks")
def post_tick(
    symbol: str, body: TickIn, registry: EngineRegistry = Depends(get_registry),
) -> dict:
    """Ingest one tick and report any predictions it resolved."""
    tick = Tick(
        price=body.price,
        volume=body.volume,
        timestamp=body.timestamp if body.timestamp is not None else int(time.time() * 1000),
        bid=body.bid,
        ask=body.ask,
        source=body.source,
    )
    with _engine(registry, symbol) as engine:
        resolved = engine.process_tick(tick)
        tick_count = engine.get_tick_count()
    return {
        "tickCount": tick_count,
        "resolved": [p.to_dict() for p in resolved],
    }


@router.post("/symbols/{symbol}/predictions")
def post_prediction(
    symbol: str,
    body: PredictionRequest | None = None,
    registry: EngineRegistry = Depends(get_registry),
) -> dict:
    """Generate a forecast. ``prediction`` is null until enough ticks arrived."""
    horizon = body.horizon_ms if body else None
    with _engine(registry, symbol) as engine:
        prediction = engine.generate_prediction(horizon)
    return {"prediction": prediction.to_dict() if prediction else None}


@router.get("/symbols/{symbol}/state")
def get_state(symbol: str, registry: EngineRegistry = Depends(get_registry)) -> dict:
    with _engine(registry, symbol) as engine:
        return engine.get_state().to_dict()


@router.get("/symbols/{symbol}/stats")
def get_stats(symbol: str, registry: EngineRegistry = Depends(get_registry)) -> dict:
    with _engine(registry, symbol) as engine:
        return engine.get_stats().to_dict()


@router.get("/symbols/{symbol}/predictions/pending")
def get_pending(symbol: str, registry: EngineRegistry = Depends(get_registry)) -> dict:
    with _engine(registry, symbol) as engine:
        pending = engine.get_pending_predictions()
    return {"predictions": [p.to_dict() for p in pending]}


@router.get("/symbols/{symbol}/predictions/recent")
def get_recent(
    symbol: str,
    count: int = Query(default=20, ge=1, le=100),
    registry: EngineRegistry = Depends(get_registry),
) -> dict:
    with _engine(registry, symbol) as engine:
        recent = engine.get_recent_predictions(count)
    return {"predictions": [p.to_dict() for p in recent]}


@router.get("/symbols/{symbol}/ticks/latest")
def get_latest_tick(symbol: str, registry: EngineRegistry = Depends(get_registry)) -> dict:
    with _engine(registry, symbol) as engine:
        latest = engine.get_latest_tick()
        count = engine.get_tick_count()
    return {"tickCount": count, "tick": latest.to_dict() if latest else None}


@router.post("/symbols/{symbol}/reset")
def reset_engine(symbol: str, registry: EngineRegistry = Depends(get_registry)) -> dict:
    with _engine(registry, symbol) as engine:
        engine.reset()
    return {"status": "reset", "symbol": symbol.upper()}
