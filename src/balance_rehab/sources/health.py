"""
Health Data Sink
================

Session summaries written to a health data store, and read-side
aggregates (steps, distance, heart rate, falls) over date ranges.
Every read and write requires prior authorization.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Protocol

from balance_rehab.exceptions import HealthAccessDeniedError
from balance_rehab.metrics.types import ExerciseSession

logger = logging.getLogger(__name__)

STEPS = "steps"
DISTANCE = "distance"
ENERGY = "energy"
HEART_RATE = "heart_rate"
FALLS = "falls"

QUANTITY_KINDS = (STEPS, DISTANCE, ENERGY, HEART_RATE, FALLS)


class TrendDirection(Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


@dataclass
class SessionHealthSummary:
    """Aggregates written to the health store for one finished session."""

    session_id: str
    start_time: float
    end_time: float
    step_count: int
    distance_m: float
    calories: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class HealthSample:
    kind: str
    timestamp: float
    value: float


@dataclass
class HealthTrends:
    average_steps_per_day: float
    average_distance_per_day: float
    average_heart_rate: float
    fall_count: int
    step_trend: TrendDirection
    distance_trend: TrendDirection

    def to_dict(self) -> dict:
        data = asdict(self)
        data["step_trend"] = self.step_trend.value
        data["distance_trend"] = self.distance_trend.value
        return data


def summarize_session(session: ExerciseSession) -> SessionHealthSummary:
    """
    Derive step count, distance and calories for a finished session.

    Each gait sample contributes cadence-per-minute steps and speed-times-
    duration distance over the whole session duration.
    """
    duration = session.duration
    steps = sum(int(m.cadence * duration / 60) for m in session.gait_metrics)
    distance = sum(m.walking_speed * duration for m in session.gait_metrics)
    calories = session.exercise_type.calories_per_minute * duration / 60.0

    return SessionHealthSummary(
        session_id=session.session_id,
        start_time=session.start_time,
        end_time=session.end_time if session.end_time is not None else session.start_time,
        step_count=steps,
        distance_m=distance,
        calories=calories,
    )


def calculate_trend(values: list[float], window: int = 7, threshold: float = 0.1) -> TrendDirection:
    """Compare the mean of the last ``window`` values to the first ``window``."""
    if len(values) < 2:
        return TrendDirection.STABLE

    n = min(len(values), window)
    recent = sum(values[-n:]) / n
    older = sum(values[:n]) / n
    if older == 0:
        return TrendDirection.STABLE

    change = (recent - older) / older
    if change > threshold:
        return TrendDirection.INCREASING
    if change < -threshold:
        return TrendDirection.DECREASING
    return TrendDirection.STABLE


class HealthDataSink(Protocol):
    @property
    def is_authorized(self) -> bool: ...

    def save_session(self, summary: SessionHealthSummary) -> None: ...

    def query(self, kind: str, start: datetime, end: datetime) -> list[HealthSample]: ...


class InMemoryHealthStore:
    """Process-local health store with an explicit authorization gate."""

    def __init__(self, authorized: bool = False, available: bool = True):
        self.available = available
        self._authorized = authorized and available
        self._samples: list[HealthSample] = []
        self._sessions: dict[str, SessionHealthSummary] = {}
        self._lock = threading.Lock()

    @property
    def is_authorized(self) -> bool:
        return self._authorized

    def request_authorization(self, granted: bool = True) -> bool:
        """Simulate the user's answer to an authorization prompt."""
        if not self.available:
            logger.warning("Health data is not available on this device")
            self._authorized = False
        else:
            self._authorized = granted
        return self._authorized

    def _require_authorization(self) -> None:
        if not self._authorized:
            raise HealthAccessDeniedError("Health data authorization required")

    def add_sample(self, kind: str, timestamp: float, value: float) -> None:
        """Record an externally observed quantity (heart rate, fall event, ...)."""
        if kind not in QUANTITY_KINDS:
            raise ValueError(f"Unknown health data kind: {kind}")
        self._require_authorization()
        with self._lock:
            self._samples.append(HealthSample(kind, timestamp, value))

    def save_session(self, summary: SessionHealthSummary) -> None:
        """Write a session summary once; rewriting the same session is an error."""
        self._require_authorization()
        with self._lock:
            if summary.session_id in self._sessions:
                raise ValueError(f"Session {summary.session_id} already written")
            self._sessions[summary.session_id] = summary
            self._samples.extend(
                [
                    HealthSample(STEPS, summary.end_time, float(summary.step_count)),
                    HealthSample(DISTANCE, summary.end_time, summary.distance_m),
                    HealthSample(ENERGY, summary.end_time, summary.calories),
                ]
            )
        logger.info(
            "Saved health summary for %s: %d steps, %.1f m, %.1f kcal",
            summary.session_id,
            summary.step_count,
            summary.distance_m,
            summary.calories,
        )

    def query(self, kind: str, start: datetime, end: datetime) -> list[HealthSample]:
        """Samples of ``kind`` with start <= timestamp < end, oldest first."""
        self._require_authorization()
        lo, hi = start.timestamp(), end.timestamp()
        with self._lock:
            found = [s for s in self._samples if s.kind == kind and lo <= s.timestamp < hi]
        return sorted(found, key=lambda s: s.timestamp)

    def daily_totals(self, kind: str, start: datetime, end: datetime) -> list[float]:
        """Per-day sums of ``kind`` for each day in [start, end]."""
        totals = []
        day = start
        while day <= end:
            totals.append(sum(s.value for s in self.query(kind, day, day + timedelta(days=1))))
            day += timedelta(days=1)
        return totals

    def daily_means(self, kind: str, start: datetime, end: datetime) -> list[float]:
        means = []
        day = start
        while day <= end:
            samples = self.query(kind, day, day + timedelta(days=1))
            means.append(sum(s.value for s in samples) / max(len(samples), 1))
            day += timedelta(days=1)
        return means

    def analyze_trends(self, start: datetime, end: datetime) -> HealthTrends:
        steps = self.daily_totals(STEPS, start, end)
        distances = self.daily_totals(DISTANCE, start, end)
        heart_rates = [v for v in self.daily_means(HEART_RATE, start, end) if v > 0]
        falls = self.query(FALLS, start, end + timedelta(days=1))

        return HealthTrends(
            average_steps_per_day=sum(steps) / max(len(steps), 1),
            average_distance_per_day=sum(distances) / max(len(distances), 1),
            average_heart_rate=sum(heart_rates) / len(heart_rates) if heart_rates else 0.0,
            fall_count=len(falls),
            step_trend=calculate_trend(steps),
            distance_trend=calculate_trend(distances),
        )

    def export(self, start: datetime, end: datetime) -> dict:
        """JSON-ready export of daily aggregates over the range."""
        return {
            "step_counts": self.daily_totals(STEPS, start, end),
            "distances": self.daily_totals(DISTANCE, start, end),
            "heart_rates": self.daily_means(HEART_RATE, start, end),
            "fall_count": len(self.query(FALLS, start, end + timedelta(days=1))),
        }
