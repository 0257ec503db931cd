from tickcast.engine.buffer import TickBuffer
from tickcast.engine.core import DirectionStats, EngineStats, TickPredictionEngine
from tickcast.engine.generator import PredictionGenerator
from tickcast.engine.learning import LearningStateManager
from tickcast.engine.ledger import PredictionLedger
from tickcast.engine.registry import EngineRegistry
from tickcast.engine.resolver import OutcomeResolver

__all__ = [
    "DirectionStats",
    "EngineRegistry",
    "EngineStats",
    "LearningStateManager",
    "OutcomeResolver",
    "PredictionGenerator",
    "PredictionLedger",
    "TickBuffer",
    "TickPredictionEngine",
]
