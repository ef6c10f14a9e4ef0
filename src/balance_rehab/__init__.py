"""Balance Rehab: motion-derived balance and gait metrics.

Turns device-motion samples into balance and gait metrics, scores
rehabilitation sessions, tracks longitudinal progress and recommends
the next exercise for patients with peripheral neuropathy.
"""

__version__ = "0.1.0"

from balance_rehab.core import Settings, get_settings, init_db, setup_logging
from balance_rehab.metrics import (
    BalanceMetrics,
    ExerciseDifficulty,
    ExerciseSession,
    ExerciseType,
    GaitMetrics,
    MotionSample,
)
from balance_rehab.recommendation import RecommendationEngine
from balance_rehab.session import RehabilitationService, SessionAccumulator

__all__ = [
    "BalanceMetrics",
    "ExerciseDifficulty",
    "ExerciseSession",
    "ExerciseType",
    "GaitMetrics",
    "MotionSample",
    "RecommendationEngine",
    "RehabilitationService",
    "SessionAccumulator",
    "Settings",
    "__version__",
    "get_settings",
    "init_db",
    "setup_logging",
]
