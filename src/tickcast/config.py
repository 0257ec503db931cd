from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class EngineConfig:
    """Tunables for one prediction engine. Fixed at construction."""

    min_horizon_ms: int = 1000
    max_horizon_ms: int = 30000
    base_confidence: float = 50.0
    learning_rate: float = 0.15
    volatility_window: int = 50
    momentum_window: int = 20
    min_ticks_for_prediction: int = 10
    initial_horizon_ms: int = 5000
    flat_threshold_pct: float = 0.01  # percent, not fraction
    horizon_step_ms: int = 500
    buffer_capacity: int = 500
    resolved_history: int = 100
    recent_window: int = 20

    def __post_init__(self) -> None:
        if self.min_horizon_ms <= 0:
            raise ValueError(f"min_horizon_ms must be > 0, got {self.min_horizon_ms}")
        if self.max_horizon_ms < self.min_horizon_ms:
            raise ValueError(
                f"max_horizon_ms ({self.max_horizon_ms}) must be >= "
                f"min_horizon_ms ({self.min_horizon_ms})"
            )
        if not (self.min_horizon_ms <= self.initial_horizon_ms <= self.max_horizon_ms):
            raise ValueError(
                f"initial_horizon_ms must lie in [{self.min_horizon_ms}, "
                f"{self.max_horizon_ms}], got {self.initial_horizon_ms}"
            )
        if self.learning_rate < 0:
            raise ValueError(f"learning_rate must be >= 0, got {self.learning_rate}")
        if self.horizon_step_ms < 0:
            raise ValueError(f"horizon_step_ms must be >= 0, got {self.horizon_step_ms}")
        if self.flat_threshold_pct < 0:
            raise ValueError(
                f"flat_threshold_pct must be >= 0, got {self.flat_threshold_pct}"
            )
        for name in (
            "volatility_window",
            "momentum_window",
            "min_ticks_for_prediction",
            "buffer_capacity",
            "resolved_history",
            "recent_window",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0, got {getattr(self, name)}")


@dataclass(frozen=True)
class AppConfig:
    symbols: tuple[str, ...] = ()
    poll_interval: float = 1.5
    predict_every: int = 5
    max_pending: int = 3
    enable_streams: bool = False
    api_token: str = ""
    engine: EngineConfig = field(default_factory=EngineConfig)


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


def load_engine_config() -> EngineConfig:
    """Build an EngineConfig from TICKCAST_* environment variables."""
    defaults = EngineConfig()
    return EngineConfig(
        min_horizon_ms=int(os.environ.get("TICKCAST_MIN_HORIZON_MS", defaults.min_horizon_ms)),
        max_horizon_ms=int(os.environ.get("TICKCAST_MAX_HORIZON_MS", defaults.max_horizon_ms)),
        base_confidence=float(os.environ.get("TICKCAST_BASE_CONFIDENCE", defaults.base_confidence)),
        learning_rate=float(os.environ.get("TICKCAST_LEARNING_RATE", defaults.learning_rate)),
        volatility_window=int(
            os.environ.get("TICKCAST_VOLATILITY_WINDOW", defaults.volatility_window)
        ),
        momentum_window=int(os.environ.get("TICKCAST_MOMENTUM_WINDOW", defaults.momentum_window)),
        min_ticks_for_prediction=int(
            os.environ.get("TICKCAST_MIN_TICKS", defaults.min_ticks_for_prediction)
        ),
        initial_horizon_ms=int(
            os.environ.get("TICKCAST_INITIAL_HORIZON_MS", defaults.initial_horizon_ms)
        ),
        flat_threshold_pct=float(
            os.environ.get("TICKCAST_FLAT_THRESHOLD_PCT", defaults.flat_threshold_pct)
        ),
        horizon_step_ms=int(os.environ.get("TICKCAST_HORIZON_STEP_MS", defaults.horizon_step_ms)),
        buffer_capacity=int(os.environ.get("TICKCAST_BUFFER_CAPACITY", defaults.buffer_capacity)),
        resolved_history=int(
            os.environ.get("TICKCAST_RESOLVED_HISTORY", defaults.resolved_history)
        ),
        recent_window=int(os.environ.get("TICKCAST_RECENT_WINDOW", defaults.recent_window)),
    )


def load_config() -> AppConfig:
    """Load application config from environment variables.

    Loads .env file if present in the current directory.
    """
    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    symbols = tuple(
        s.strip().upper()
        for s in os.environ.get("TICKCAST_SYMBOLS", "").split(",")
        if s.strip()
    )
    return AppConfig(
        symbols=symbols,
        poll_interval=float(os.environ.get("TICKCAST_POLL_INTERVAL", "1.5")),
        predict_every=int(os.environ.get("TICKCAST_PREDICT_EVERY", "5")),
        max_pending=int(os.environ.get("TICKCAST_MAX_PENDING", "3")),
        enable_streams=_env_bool("TICKCAST_ENABLE_STREAMS", "false"),
        api_token=os.environ.get("TICKCAST_API_TOKEN", ""),
        engine=load_engine_config(),
    )
