"""WebSocket endpoint for live engine updates."""

from __future__ import annotations

import asyncio
import hmac
import logging
from datetime import UTC, datetime

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from tickcast.api.deps import app_state

logger = logging.getLogger(__name__)

router = APIRouter()

PUSH_INTERVAL = 2  # seconds between state pushes


def _snapshot(symbol: str) -> dict | None:
    registry = app_state.registry
    if registry is None:
        return None
    try:
        with registry.locked(symbol) as engine:
            latest = engine.get_latest_tick()
            return {
                "stats": engine.get_stats().to_dict(),
                "pending": [p.to_dict() for p in engine.get_pending_predictions()],
                "latestTick": latest.to_dict() if latest else None,
                "adaptiveHorizonMs": engine.get_state().adaptive_horizon_ms,
            }
    except KeyError:
        return None


@router.websocket("/ws/symbols/{symbol}")
async def ws_symbol(websocket: WebSocket, symbol: str):
    """Push engine stats and pending predictions every few seconds."""
    config = app_state.config
    if config and config.api_token:
        token = websocket.query_params.get("token", "")
        if not hmac.compare_digest(token, config.api_token):
            await websocket.close(code=4001, reason="Not authenticated")
            return

    await websocket.accept()

    snapshot = _snapshot(symbol)
    if snapshot is None:
        await websocket.send_json({"type": "error", "message": f"Unknown symbol {symbol.upper()}"})
        await websocket.close()
        return

    await websocket.send_json({
        "type": "init",
        "symbol": symbol.upper(),
        **snapshot,
        "timestamp": datetime.now(UTC).isoformat(),
    })

    try:
        while True:
            try:
                # Wait for interval, but also notice client disconnects
                await asyncio.wait_for(websocket.receive_text(), timeout=PUSH_INTERVAL)
            except asyncio.TimeoutError:
                pass

            snapshot = _snapshot(symbol)
            if snapshot is None:
                await websocket.send_json({"type": "error", "message": "Engine removed"})
                await websocket.close()
                return
            await websocket.send_json({
                "type": "update",
                "symbol": symbol.upper(),
                **snapshot,
                "timestamp": datetime.now(UTC).isoformat(),
            })
    except WebSocketDisconnect:
        logger.debug("WebSocket client for %s disconnected", symbol.upper())
