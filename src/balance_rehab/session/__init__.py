"""Session lifecycle, scoring and progress aggregation.

Flow per session:
1) samples are queued and turned into metrics by the accumulator worker
2) the session is scored when it ends
3) progress is recomputed over the full history
"""

from .accumulator import SessionAccumulator
from .events import (
    ADVISORY,
    PREDICTION_READY,
    PROGRESS_UPDATED,
    SAMPLE_PROCESSED,
    SESSION_ENDED,
    SESSION_STARTED,
    EventBus,
)
from .orchestrator import RehabilitationService
from .progress import (
    average_gait_score,
    average_stability_score,
    calculate_progress,
    fall_risk_trend,
    improvement_rate,
)
from .scoring import ScoreBreakdown, calculate_overall_score, safe_mean, score_breakdown

__all__ = [
    "ADVISORY",
    "EventBus",
    "PREDICTION_READY",
    "PROGRESS_UPDATED",
    "RehabilitationService",
    "SAMPLE_PROCESSED",
    "SESSION_ENDED",
    "SESSION_STARTED",
    "ScoreBreakdown",
    "SessionAccumulator",
    "average_gait_score",
    "average_stability_score",
    "calculate_overall_score",
    "calculate_progress",
    "fall_risk_trend",
    "improvement_rate",
    "safe_mean",
    "score_breakdown",
]
