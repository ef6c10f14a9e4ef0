"""Session scoring: reduce accumulated metrics to one overall score."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from balance_rehab.metrics.types import ExerciseSession


@dataclass
class ScoreBreakdown:
    balance_score: float
    gait_score: float
    overall_score: float


def safe_mean(values: list[float]) -> float:
    """Mean of values, 0.0 for an empty list."""
    if not values:
        return 0.0
    return float(np.mean(values))


def score_breakdown(session: ExerciseSession) -> ScoreBreakdown:
    """Balance, gait and overall scores (all 0-100) for a session."""
    balance_score = safe_mean([m.stability_score for m in session.balance_metrics])
    gait_score = safe_mean([m.gait_symmetry * 100 for m in session.gait_metrics])
    return ScoreBreakdown(
        balance_score=balance_score,
        gait_score=gait_score,
        overall_score=(balance_score + gait_score) / 2.0,
    )


def calculate_overall_score(session: ExerciseSession) -> float:
    """Mean stability and mean gait symmetry (x100), averaged."""
    return score_breakdown(session).overall_score
