"""Per-sample metric derivation.

Each motion sample yields balance metrics, optional gait metrics (walking
samples only) and simulated VR tracking data.
"""

from .balance import calculate_balance_metrics
from .gait import DEFAULT_WALKING_THRESHOLD, GaitCalculator, is_walking
from .types import (
    BalanceMetrics,
    ExerciseDifficulty,
    ExerciseSession,
    ExerciseType,
    GaitMetrics,
    MLPrediction,
    MotionSample,
    Point2D,
    RehabilitationProgress,
    Vector2D,
    Vector3,
    VRTrackingData,
)
from .vr import calculate_vr_tracking

__all__ = [
    "BalanceMetrics",
    "DEFAULT_WALKING_THRESHOLD",
    "ExerciseDifficulty",
    "ExerciseSession",
    "ExerciseType",
    "GaitCalculator",
    "GaitMetrics",
    "MLPrediction",
    "MotionSample",
    "Point2D",
    "RehabilitationProgress",
    "VRTrackingData",
    "Vector2D",
    "Vector3",
    "calculate_balance_metrics",
    "calculate_vr_tracking",
    "is_walking",
]
