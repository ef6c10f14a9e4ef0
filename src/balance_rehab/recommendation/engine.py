"""
Recommendation Engine
=====================

Rule-table recommendations over balance, gait and history features:
exercise type, difficulty tier, risk label, advisory text and a
confidence value. Also owns adaptive difficulty adjustment.

There is no learned model; ``record_outcome`` keeps a labelled
history of sessions for later inspection only.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

import numpy as np

from balance_rehab.metrics.types import (
    BalanceMetrics,
    ExerciseDifficulty,
    ExerciseSession,
    ExerciseType,
    GaitMetrics,
    MLPrediction,
)

logger = logging.getLogger(__name__)

# Feature vector layout
FEATURE_NAMES = [
    "stability_score",
    "fall_risk",
    "sway_area",
    "sway_velocity",
    "gait_symmetry",
    "walking_speed",
    "cadence",
    "step_length",
    "avg_history_score",
    "session_count",
]
IDX_STABILITY = 0
IDX_FALL_RISK = 1
IDX_GAIT_SYMMETRY = 4
IDX_HISTORY_SCORE = 8

HIGH_RISK = "High Risk"
MEDIUM_RISK = "Medium Risk"
LOW_RISK = "Low Risk"

DEFAULT_ADVICE = "Continue with current exercise progression"

# (exercise, difficulty, risk) -> advice; None matches anything. First match wins.
ADVICE_TABLE: list[tuple[tuple[ExerciseType | None, ExerciseDifficulty | None, str | None], str]] = [
    (
        (ExerciseType.STATIC_BALANCE, None, HIGH_RISK),
        "Focus on basic balance exercises with support",
    ),
    (
        (ExerciseType.GAIT_TRAINING, ExerciseDifficulty.BEGINNER, None),
        "Practice walking with assistance if needed",
    ),
    (
        (ExerciseType.OBSTACLE_COURSE, ExerciseDifficulty.EXPERT, LOW_RISK),
        "Challenge yourself with complex movements",
    ),
]

MIN_CONFIDENCE = 0.3
MAX_CONFIDENCE = 0.95


class ExerciseOutcome(Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"
    INJURY = "injury"


@dataclass
class TrainingPoint:
    """Labelled session summary kept for model-performance reporting."""

    stability_score: float
    fall_risk_index: float
    gait_symmetry: float | None
    outcome: ExerciseOutcome


def outcome_for_score(score: float) -> ExerciseOutcome:
    if score > 80:
        return ExerciseOutcome.SUCCESS
    if score > 60:
        return ExerciseOutcome.PARTIAL
    if score > 40:
        return ExerciseOutcome.FAILURE
    return ExerciseOutcome.INJURY


def extract_features(
    balance: BalanceMetrics | None,
    gait: GaitMetrics | None,
    history: Sequence[ExerciseSession],
    history_window: int = 5,
) -> np.ndarray:
    """
    Build the 10-element normalized feature vector.

    Missing balance or gait metrics contribute a zero block.
    """
    features: list[float] = []

    if balance is not None:
        features += [
            balance.stability_score / 100.0,
            balance.fall_risk_index / 100.0,
            balance.sway_area / 10.0,
            balance.sway_velocity / 5.0,
        ]
    else:
        features += [0.0] * 4

    if gait is not None:
        features += [
            gait.gait_symmetry,
            gait.walking_speed / 2.0,
            gait.cadence / 120.0,
            gait.step_length / 1.0,
        ]
    else:
        features += [0.0] * 4

    recent = list(history)[-history_window:] if history_window > 0 else []
    avg_score = sum(s.overall_score for s in recent) / max(len(recent), 1)
    features.append(avg_score / 100.0)
    features.append(min(len(history) / 50.0, 1.0))

    return np.asarray(features, dtype=float)


def recommend_exercise(stability: float, fall_risk: float, gait_symmetry: float) -> ExerciseType:
    """Ordered rules; the first matching condition wins."""
    if fall_risk > 0.7:
        return ExerciseType.STATIC_BALANCE
    if stability < 0.6:
        return ExerciseType.DYNAMIC_BALANCE
    if gait_symmetry < 0.8:
        return ExerciseType.GAIT_TRAINING
    if stability > 0.8:
        return ExerciseType.OBSTACLE_COURSE
    return ExerciseType.DUAL_TASK


def recommend_difficulty(stability: float, fall_risk: float, avg_score: float) -> ExerciseDifficulty:
    composite = (stability + (1.0 - fall_risk) + avg_score) / 3.0
    if composite > 0.8:
        return ExerciseDifficulty.EXPERT
    if composite > 0.6:
        return ExerciseDifficulty.ADVANCED
    if composite > 0.4:
        return ExerciseDifficulty.INTERMEDIATE
    return ExerciseDifficulty.BEGINNER


def calculate_confidence(features: np.ndarray) -> float:
    """(1 - variance) scaled by the share of non-zero features, clamped."""
    if features.size == 0:
        return MIN_CONFIDENCE
    variance = float(np.var(features))
    data_quality = float(np.count_nonzero(features > 0)) / features.size
    return float(np.clip((1.0 - variance) * data_quality, MIN_CONFIDENCE, MAX_CONFIDENCE))


def assess_risk(fall_risk: float, stability: float) -> str:
    risk_level = (fall_risk + (1.0 - stability)) / 2.0
    if risk_level > 0.7:
        return HIGH_RISK
    if risk_level > 0.4:
        return MEDIUM_RISK
    return LOW_RISK


def advice_for(exercise: ExerciseType, difficulty: ExerciseDifficulty, risk: str) -> str:
    """Look up advisory text; unmatched combinations get the default advice."""
    for (want_exercise, want_difficulty, want_risk), text in ADVICE_TABLE:
        if want_exercise is not None and want_exercise != exercise:
            continue
        if want_difficulty is not None and want_difficulty != difficulty:
            continue
        if want_risk is not None and want_risk != risk:
            continue
        return text
    return DEFAULT_ADVICE


def adjust_difficulty(
    current: ExerciseDifficulty,
    performance: float,
    risk_level: float,
    performance_threshold: float = 0.7,
    risk_threshold: float = 0.6,
) -> ExerciseDifficulty:
    """Step difficulty up on good performance at low risk, down on poor performance or high risk."""
    if performance > performance_threshold and risk_level < risk_threshold:
        return current.step_up()
    if performance < performance_threshold or risk_level > risk_threshold:
        return current.step_down()
    return current


class RecommendationEngine:
    """
    Produces MLPrediction records and tracks their history.

    Usage:
        engine = RecommendationEngine(latency_seconds=0.5)
        future = engine.predict_async(session_id, balance, gait, history)
        prediction = future.result()
    """

    def __init__(
        self,
        latency_seconds: float = 0.5,
        history_window: int = 5,
        training_seed: int | None = 42,
    ):
        self.latency_seconds = latency_seconds
        self.history_window = history_window
        self._executor: ThreadPoolExecutor | None = None
        self.prediction_history: list[MLPrediction] = []
        self.training_data: list[TrainingPoint] = self._default_training_data(training_seed)

    @classmethod
    def from_settings(cls, settings) -> RecommendationEngine:
        return cls(
            latency_seconds=settings.recommendation.latency_seconds,
            history_window=settings.recommendation.history_window,
            training_seed=settings.recommendation.training_seed,
        )

    @property
    def last_prediction(self) -> Optional[MLPrediction]:
        return self.prediction_history[-1] if self.prediction_history else None

    def predict(
        self,
        balance: BalanceMetrics | None,
        gait: GaitMetrics | None,
        history: Sequence[ExerciseSession],
        session_id: str | None = None,
    ) -> MLPrediction:
        """Generate a prediction synchronously."""
        features = extract_features(balance, gait, history, self.history_window)
        stability = float(features[IDX_STABILITY])
        fall_risk = float(features[IDX_FALL_RISK])

        exercise = recommend_exercise(stability, fall_risk, float(features[IDX_GAIT_SYMMETRY]))
        difficulty = recommend_difficulty(stability, fall_risk, float(features[IDX_HISTORY_SCORE]))
        risk = assess_risk(fall_risk, stability)

        prediction = MLPrediction(
            predicted_difficulty=difficulty,
            confidence=calculate_confidence(features),
            recommended_exercise=exercise,
            risk_assessment=risk,
            next_session_recommendation=advice_for(exercise, difficulty, risk),
            session_id=session_id,
        )
        self.prediction_history.append(prediction)
        logger.debug(
            "Prediction for %s: %s / %s, %s (confidence %.2f)",
            session_id,
            exercise.value,
            difficulty.value,
            risk,
            prediction.confidence,
        )
        return prediction

    def predict_async(
        self,
        session_id: str,
        balance: BalanceMetrics | None,
        gait: GaitMetrics | None,
        history: Sequence[ExerciseSession],
        on_ready: Callable[[MLPrediction], None] | None = None,
    ) -> Future:
        """
        Generate a prediction on a background thread after ``latency_seconds``.

        ``on_ready`` runs on the background thread before the future
        resolves, so callers waiting on the future observe its effects.
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="recommendation")
        snapshot = tuple(history)
        return self._executor.submit(
            self._delayed_predict, session_id, balance, gait, snapshot, on_ready
        )

    def _delayed_predict(self, session_id, balance, gait, history, on_ready) -> MLPrediction:
        if self.latency_seconds > 0:
            time.sleep(self.latency_seconds)
        prediction = self.predict(balance, gait, history, session_id=session_id)
        if on_ready is not None:
            on_ready(prediction)
        return prediction

    def record_outcome(self, session: ExerciseSession) -> TrainingPoint:
        """Label a finished session and add it to the training history."""
        n_balance = max(len(session.balance_metrics), 1)
        point = TrainingPoint(
            stability_score=sum(m.stability_score for m in session.balance_metrics) / n_balance,
            fall_risk_index=sum(m.fall_risk_index for m in session.balance_metrics) / n_balance,
            gait_symmetry=(
                sum(m.gait_symmetry for m in session.gait_metrics) / len(session.gait_metrics)
                if session.gait_metrics
                else None
            ),
            outcome=outcome_for_score(session.overall_score),
        )
        self.training_data.append(point)

        if len(self.training_data) % 10 == 0:
            logger.info("Retraining recommendation model with %d data points", len(self.training_data))
        return point

    def prediction_accuracy(self) -> float:
        """Share of predictions issued with confidence above 0.7."""
        if not self.prediction_history:
            return 0.0
        confident = sum(1 for p in self.prediction_history if p.confidence > 0.7)
        return confident / len(self.prediction_history)

    def model_performance(self) -> dict[str, float]:
        confidences = [p.confidence for p in self.prediction_history]
        return {
            "accuracy": self.prediction_accuracy(),
            "confidence": sum(confidences) / max(len(confidences), 1),
            "training_samples": float(len(self.training_data)),
        }

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    @staticmethod
    def _default_training_data(seed: int | None, n_points: int = 50) -> list[TrainingPoint]:
        """Synthetic starting set so performance stats are defined before any session."""
        rng = np.random.default_rng(seed)
        points = []
        for _ in range(n_points):
            stability = float(rng.uniform(0.3, 1.0))
            fall_risk = float(rng.uniform(0.0, 0.7))
            if stability > 0.7 and fall_risk < 0.3:
                outcome = ExerciseOutcome.SUCCESS
            elif stability > 0.5 and fall_risk < 0.5:
                outcome = ExerciseOutcome.PARTIAL
            elif stability > 0.3:
                outcome = ExerciseOutcome.FAILURE
            else:
                outcome = ExerciseOutcome.INJURY
            points.append(
                TrainingPoint(
                    stability_score=stability * 100,
                    fall_risk_index=fall_risk * 100,
                    gait_symmetry=float(rng.uniform(0.6, 1.0)),
                    outcome=outcome,
                )
            )
        return points
