"""FastAPI application factory with token auth and lifespan management."""

from __future__ import annotations

import hmac
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from tickcast.api.deps import app_state
from tickcast.config import load_config
from tickcast.engine.registry import EngineRegistry
from tickcast.learning.calibration import CalibrationEngine

logger = logging.getLogger(__name__)

API_PREFIX = "/api/tickcast"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the engine registry and start one tick stream per configured symbol."""
    from tickcast.feeds.stream import TickStream
    from tickcast.feeds.yfinance_feed import YFinanceTickFeed

    config = load_config()
    registry = EngineRegistry(config.engine)

    app_state.config = config
    app_state.registry = registry
    app_state.calibration_engine = CalibrationEngine()

    for symbol in config.symbols:
        registry.create(symbol)
        if config.enable_streams:
            stream = TickStream(
                YFinanceTickFeed(symbol),
                registry,
                poll_interval=config.poll_interval,
                predict_every=config.predict_every,
                max_pending=config.max_pending,
            )
            stream.start()
            app_state.streams[stream.symbol] = stream

    logger.info(
        "API started: %d engine(s), %d stream(s)", len(registry), len(app_state.streams),
    )
    yield

    for stream in list(app_state.streams.values()):
        await stream.stop()
    app_state.streams.clear()
    logger.info("API shutdown complete")


PUBLIC_PATHS = {
    f"{API_PREFIX}/system/health",
}


class TokenAuthMiddleware(BaseHTTPMiddleware):
    """Require the shared API token on every API route except public ones."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if not path.startswith(API_PREFIX) or path in PUBLIC_PATHS:
            return await call_next(request)

        # Skip auth entirely if no token is configured (dev mode)
        config = app_state.config
        if not config or not config.api_token:
            return await call_next(request)

        token = request.headers.get("x-api-token", "")
        if not hmac.compare_digest(token, config.api_token):
            return JSONResponse(
                status_code=401,
                content={"detail": "Not authenticated"},
            )

        return await call_next(request)


def create_app(*, use_lifespan: bool = True) -> FastAPI:
    """Build and return the FastAPI application.

    Args:
        use_lifespan: If False, skip the production lifespan (useful for testing
            where deps are injected via app_state directly).
    """
    app = FastAPI(
        title="Tickcast API",
        version="0.1.0",
        lifespan=lifespan if use_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:4173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(TokenAuthMiddleware)

    from tickcast.api import ws
    from tickcast.api.routes import engine, learning, system

    app.include_router(system.router, prefix=API_PREFIX, tags=["system"])
    app.include_router(engine.router, prefix=API_PREFIX, tags=["engine"])
    app.include_router(learning.router, prefix=API_PREFIX, tags=["learning"])
    app.include_router(ws.router, prefix=API_PREFIX, tags=["websocket"])

    return app
