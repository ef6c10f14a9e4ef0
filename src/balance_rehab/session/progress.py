"""
Progress Aggregation
====================

Longitudinal statistics over a user's full session history. Progress is
always recomputed from scratch; nothing is maintained incrementally.
"""

from __future__ import annotations

import time
from typing import Sequence

from balance_rehab.metrics.types import (
    ExerciseDifficulty,
    ExerciseSession,
    RehabilitationProgress,
)

from .scoring import safe_mean


def average_stability_score(history: Sequence[ExerciseSession]) -> float:
    return safe_mean([m.stability_score for s in history for m in s.balance_metrics])


def average_gait_score(history: Sequence[ExerciseSession]) -> float:
    return safe_mean([m.gait_symmetry * 100 for s in history for m in s.gait_metrics])


def fall_risk_trend(history: Sequence[ExerciseSession], window: int = 10) -> list[float]:
    """Per-session mean fall risk for the most recent ``window`` sessions, oldest first."""
    recent = list(history)[-window:] if window > 0 else []
    return [safe_mean([m.fall_risk_index for m in s.balance_metrics]) for s in recent]


def improvement_rate(history: Sequence[ExerciseSession], window: int = 5) -> float:
    """
    Percentage change of recent session scores over the earliest ones.

    Both windows hold ``window`` sessions, shrunk to half the history when
    it is shorter than ``2 * window`` so the recent and earliest windows
    never share a session. A zero baseline yields 0.0.
    """
    history = list(history)
    if len(history) < 2:
        return 0.0

    size = min(window, len(history) // 2)
    recent_avg = safe_mean([s.overall_score for s in history[-size:]])
    older_avg = safe_mean([s.overall_score for s in history[:size]])

    if older_avg == 0:
        return 0.0
    return (recent_avg - older_avg) / older_avg * 100


def calculate_progress(
    user_id: str,
    history: Sequence[ExerciseSession],
    start_date: float | None = None,
    trend_window: int = 10,
    improvement_window: int = 5,
) -> RehabilitationProgress:
    """Build a RehabilitationProgress record from the full history."""
    history = list(history)
    if start_date is None:
        start_date = history[0].start_time if history else time.time()

    return RehabilitationProgress(
        user_id=user_id,
        start_date=start_date,
        current_level=history[-1].difficulty if history else ExerciseDifficulty.BEGINNER,
        total_sessions=len(history),
        average_stability_score=average_stability_score(history),
        average_gait_score=average_gait_score(history),
        fall_risk_trend=fall_risk_trend(history, trend_window),
        improvement_rate=improvement_rate(history, improvement_window),
    )
