"""Learning/calibration endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from tickcast.api.deps import get_calibration_engine, get_registry
from tickcast.engine.registry import EngineRegistry
from tickcast.learning.calibration import CalibrationEngine

router = APIRouter()


@router.get("/symbols/{symbol}/calibration")
def get_calibration(
    symbol: str,
    registry: EngineRegistry = Depends(get_registry),
    calibration: CalibrationEngine = Depends(get_calibration_engine),
) -> dict:
    """Calibration report over the engine's retained resolved predictions.

    Response: {buckets, ece, brierScore, directionAccuracy, multiLevel,
    recommendations, adjustments, ...}
    """
    try:
        with registry.locked(symbol) as engine:
            predictions = engine.get_recent_predictions(engine.config.resolved_history)
            multi_level = engine.get_state().multi_level
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown symbol {symbol.upper()}") from None

    report = calibration.generate_report(predictions, symbol=symbol.upper(), multi_level=multi_level)
    data = report.to_dict()
    data["adjustments"] = calibration.get_confidence_adjustment(report.buckets)
    return data
