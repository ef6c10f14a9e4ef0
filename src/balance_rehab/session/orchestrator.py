"""
Rehabilitation Service
======================

Top-level orchestrator: wires the motion and VR sources into the session
accumulator, requests recommendations at session start, and on session end
appends to history, recomputes progress, persists both and syncs a summary
to the health store.

Sensor and health failures never abort a session; they are recorded as
advisories and published on the event bus.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import TYPE_CHECKING, Optional

from sqlalchemy.exc import SQLAlchemyError

from balance_rehab.core.config import Settings, get_settings
from balance_rehab.exceptions import (
    HealthAccessDeniedError,
    SensorUnavailableError,
    StaleResultError,
)
from balance_rehab.metrics.types import (
    ExerciseDifficulty,
    ExerciseSession,
    ExerciseType,
    MLPrediction,
    MotionSample,
    RehabilitationProgress,
)
from balance_rehab.recommendation.engine import RecommendationEngine, adjust_difficulty
from balance_rehab.sources.health import summarize_session
from balance_rehab.sources.vr import CalibrationResult, VRTrackingSource

from .accumulator import SessionAccumulator
from .events import ADVISORY, PREDICTION_READY, PROGRESS_UPDATED, EventBus
from .progress import calculate_progress

if TYPE_CHECKING:
    from balance_rehab.sources.health import HealthDataSink
    from balance_rehab.sources.motion import MotionSource
    from balance_rehab.storage.store import SessionStore

logger = logging.getLogger(__name__)


class RehabilitationService:
    """Session lifecycle plus history, progress and recommendation state."""

    def __init__(
        self,
        settings: Settings | None = None,
        motion_source: MotionSource | None = None,
        vr_source: VRTrackingSource | None = None,
        health_store: HealthDataSink | None = None,
        store: SessionStore | None = None,
        engine: RecommendationEngine | None = None,
        events: EventBus | None = None,
        user_id: str | None = None,
    ):
        self.settings = settings or get_settings()
        self.events = events or EventBus()
        self.accumulator = SessionAccumulator.from_settings(self.settings, events=self.events)
        self.engine = engine or RecommendationEngine.from_settings(self.settings)
        self.motion_source = motion_source
        self.vr_source = vr_source
        self.health_store = health_store
        self.store = store
        self.user_id = user_id or self.settings.session.user_id

        self._history: list[ExerciseSession] = []
        self._lock = threading.Lock()
        self.progress: RehabilitationProgress | None = None
        self.prediction: MLPrediction | None = None
        self.vr_calibrated: bool | None = None
        self.advisories: list[str] = []
        self._pending_prediction: Future | None = None

    # ------------------------------------------------------------------
    # State queries
    # ------------------------------------------------------------------

    @property
    def history(self) -> tuple[ExerciseSession, ...]:
        """Finished sessions, oldest first (read-only view)."""
        with self._lock:
            return tuple(self._history)

    @property
    def is_session_active(self) -> bool:
        return self.accumulator.is_active

    @property
    def current_session(self) -> ExerciseSession | None:
        return self.accumulator.active_session

    def load(self) -> None:
        """Restore history and progress from the persistent store."""
        if self.store is None:
            return
        sessions = self.store.list_sessions(self.user_id)
        with self._lock:
            self._history = sessions
        self.progress = self.store.load_progress(self.user_id) or self._recompute_progress()
        logger.info("Loaded %d sessions for %s", len(sessions), self.user_id)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start_session(
        self,
        exercise_type: ExerciseType,
        difficulty: ExerciseDifficulty,
    ) -> ExerciseSession:
        """
        Start a session, begin sensor streaming and request a recommendation.

        Raises:
            SessionAlreadyActiveError: if a session is already running
        """
        session = self.accumulator.start_session(exercise_type, difficulty)
        self.vr_calibrated = None
        self.prediction = None
        self._pending_prediction = None

        if self.motion_source is not None:
            try:
                self.motion_source.start(self.submit_sample)
            except SensorUnavailableError as e:
                self._advise(str(e))

        if self.vr_source is not None:
            try:
                self.vr_source.start()
            except SensorUnavailableError as e:
                self._advise(str(e))

        future = self.engine.predict_async(
            session.session_id,
            self.accumulator.current_balance_metrics,
            self.accumulator.current_gait_metrics,
            self.history,
            on_ready=self._on_prediction,
        )
        self._pending_prediction = future
        return session

    def submit_sample(self, sample: MotionSample) -> bool:
        """Motion-source callback; queues the sample and returns immediately."""
        if self.vr_source is not None:
            self.vr_source.track(sample)
        return self.accumulator.submit_sample(sample)

    def end_session(self) -> Optional[ExerciseSession]:
        """
        Finalize the active session.

        Returns:
            The finished session, or None if no session was active
        """
        session = self.accumulator.end_session()
        if session is None:
            return None

        if self.motion_source is not None:
            self.motion_source.stop()
        if self.vr_source is not None:
            self.vr_source.stop()

        with self._lock:
            self._history.append(session)

        self.progress = self._recompute_progress()
        if self.store is not None:
            try:
                self.store.append_session(self.user_id, session)
                self.store.save_progress(self.progress)
            except (SQLAlchemyError, ValueError) as e:
                self._advise(f"Session {session.session_id} not saved: {e}")
        self.events.publish(PROGRESS_UPDATED, self.progress)

        self.engine.record_outcome(session)
        self._sync_health(session)
        return session

    def calibrate_vr(self) -> Future | None:
        """Start VR calibration for the active session."""
        if self.vr_source is None:
            self._advise("No VR tracking source configured")
            return None
        session_id = self.accumulator.active_session_id
        return self.vr_source.calibrate_async(session_id, on_done=self._on_calibration)

    def wait_for_prediction(self, timeout: float | None = None) -> MLPrediction | None:
        """Block until the pending recommendation resolves (stale results return None)."""
        future = self._pending_prediction
        if future is None:
            return self.prediction
        prediction = future.result(timeout)
        return None if prediction.stale else prediction

    def next_difficulty(self, session: ExerciseSession) -> ExerciseDifficulty:
        """Adaptive difficulty for the session after ``session``."""
        n = max(len(session.balance_metrics), 1)
        risk = sum(m.fall_risk_index for m in session.balance_metrics) / n / 100.0
        return adjust_difficulty(session.difficulty, session.overall_score / 100.0, risk)

    def close(self) -> None:
        if self.accumulator.is_active:
            self.end_session()
        self.accumulator.close()
        self.engine.shutdown()
        if self.vr_source is not None:
            self.vr_source.shutdown()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _recompute_progress(self) -> RehabilitationProgress:
        history = self.history
        start_date = self.progress.start_date if self.progress is not None else None
        return calculate_progress(
            self.user_id,
            history,
            start_date=start_date,
            trend_window=self.settings.progress.trend_window,
            improvement_window=self.settings.progress.improvement_window,
        )

    def _on_prediction(self, prediction: MLPrediction) -> None:
        def apply():
            self.prediction = prediction

        if not self.accumulator.apply_if_active(prediction.session_id, apply):
            prediction.stale = True
            logger.warning(StaleResultError("prediction", prediction.session_id))
            return

        self.events.publish(PREDICTION_READY, prediction)

    def _on_calibration(self, result: CalibrationResult) -> None:
        def apply():
            self.vr_calibrated = result.success

        if not self.accumulator.apply_if_active(result.session_id, apply):
            logger.warning(StaleResultError("calibration", result.session_id))
            return

        if not result.success:
            self._advise("VR calibration failed")

    def _sync_health(self, session: ExerciseSession) -> None:
        if self.health_store is None:
            return
        try:
            self.health_store.save_session(summarize_session(session))
        except HealthAccessDeniedError as e:
            self._advise(f"Health sync skipped: {e}")

    def _advise(self, message: str) -> None:
        logger.warning(message)
        self.advisories.append(message)
        self.events.publish(ADVISORY, message)
