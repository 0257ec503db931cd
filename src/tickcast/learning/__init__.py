from tickcast.learning.calibration import (
    CalibrationBucket,
    CalibrationEngine,
    CalibrationReport,
)

__all__ = [
    "CalibrationBucket",
    "CalibrationEngine",
    "CalibrationReport",
]
