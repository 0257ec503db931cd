"""Dependency injection for the FastAPI application."""

from __future__ import annotations

from tickcast.config import AppConfig
from tickcast.engine.registry import EngineRegistry
from tickcast.feeds.stream import TickStream
from tickcast.learning.calibration import CalibrationEngine


class AppState:
    """Holds shared application state initialised during lifespan."""

    def __init__(self) -> None:
        self.config: AppConfig | None = None
        self.registry: EngineRegistry | None = None
        self.calibration_engine: CalibrationEngine | None = None
        self.streams: dict[str, TickStream] = {}


# Singleton shared across the app
app_state = AppState()


def get_config() -> AppConfig:
    if app_state.config is None:
        raise RuntimeError("AppConfig not initialised")
    return app_state.config


def get_registry() -> EngineRegistry:
    if app_state.registry is None:
        raise RuntimeError("EngineRegistry not initialised")
    return app_state.registry


def get_calibration_engine() -> CalibrationEngine:
    if app_state.calibration_engine is None:
        raise RuntimeError("CalibrationEngine not initialised")
    return app_state.calibration_engine


def get_streams() -> dict[str, TickStream]:
    return app_state.streams
