"""Exercise recommendation and adaptive difficulty."""

from .engine import (
    ADVICE_TABLE,
    DEFAULT_ADVICE,
    FEATURE_NAMES,
    HIGH_RISK,
    LOW_RISK,
    MEDIUM_RISK,
    ExerciseOutcome,
    RecommendationEngine,
    TrainingPoint,
    adjust_difficulty,
    advice_for,
    assess_risk,
    calculate_confidence,
    extract_features,
    outcome_for_score,
    recommend_difficulty,
    recommend_exercise,
)

__all__ = [
    "ADVICE_TABLE",
    "DEFAULT_ADVICE",
    "FEATURE_NAMES",
    "HIGH_RISK",
    "LOW_RISK",
    "MEDIUM_RISK",
    "ExerciseOutcome",
    "RecommendationEngine",
    "TrainingPoint",
    "adjust_difficulty",
    "advice_for",
    "assess_risk",
    "calculate_confidence",
    "extract_features",
    "outcome_for_score",
    "recommend_difficulty",
    "recommend_exercise",
]
