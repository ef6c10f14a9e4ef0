"""
Session Accumulator
===================

Owns the single active exercise session and its sample buffers.

Incoming motion samples are queued and processed in arrival order by one
dedicated worker thread, so the delivery path never waits on metric
computation. All mutation of the active session happens under one lock.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from queue import Queue
from typing import Callable, Optional

from balance_rehab.exceptions import SessionAlreadyActiveError
from balance_rehab.metrics.balance import calculate_balance_metrics
from balance_rehab.metrics.gait import GaitCalculator
from balance_rehab.metrics.types import (
    BalanceMetrics,
    ExerciseDifficulty,
    ExerciseSession,
    ExerciseType,
    GaitMetrics,
    MotionSample,
    VRTrackingData,
)
from balance_rehab.metrics.vr import calculate_vr_tracking

from .events import SAMPLE_PROCESSED, SESSION_ENDED, SESSION_STARTED, EventBus
from .scoring import calculate_overall_score

logger = logging.getLogger(__name__)


class _Marker:
    """Queue entry that is signalled once every earlier entry is processed."""

    def __init__(self):
        self.reached = threading.Event()


class SessionAccumulator:
    """
    Single-writer owner of the active session.

    States: idle (no session) and active. Starting while active is rejected
    with SessionAlreadyActiveError; ending while idle is a no-op.

    Usage:
        acc = SessionAccumulator()
        acc.start_session(ExerciseType.STATIC_BALANCE, ExerciseDifficulty.BEGINNER)
        acc.submit_sample(sample)      # returns immediately
        session = acc.end_session()    # drains queued samples, then finalizes
    """

    def __init__(
        self,
        gait_calculator: GaitCalculator | None = None,
        events: EventBus | None = None,
        ingest_window: int = 100,
        drain_timeout: float = 5.0,
        clock: Callable[[], float] = time.time,
    ):
        self.gait_calculator = gait_calculator or GaitCalculator()
        self.events = events or EventBus()
        self.drain_timeout = drain_timeout
        self._clock = clock

        self._lock = threading.RLock()
        self._session: ExerciseSession | None = None
        self._ending = False

        # Raw sample window; independent of the session's own metric lists
        self._recent: deque[MotionSample] = deque(maxlen=ingest_window)
        self._current_balance: BalanceMetrics | None = None
        self._current_gait: GaitMetrics | None = None
        self._current_vr: VRTrackingData | None = None

        self._queue: Queue = Queue()
        self._worker: threading.Thread | None = None

    @classmethod
    def from_settings(cls, settings, events: EventBus | None = None) -> SessionAccumulator:
        return cls(
            gait_calculator=GaitCalculator.from_settings(settings),
            events=events,
            ingest_window=settings.session.ingest_window,
            drain_timeout=settings.session.drain_timeout,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._session is not None

    @property
    def active_session(self) -> ExerciseSession | None:
        with self._lock:
            return self._session

    @property
    def active_session_id(self) -> str | None:
        with self._lock:
            return self._session.session_id if self._session else None

    @property
    def current_balance_metrics(self) -> BalanceMetrics | None:
        return self._current_balance

    @property
    def current_gait_metrics(self) -> GaitMetrics | None:
        return self._current_gait

    @property
    def current_vr_tracking_data(self) -> VRTrackingData | None:
        return self._current_vr

    @property
    def recent_samples(self) -> list[MotionSample]:
        with self._lock:
            return list(self._recent)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_session(
        self,
        exercise_type: ExerciseType,
        difficulty: ExerciseDifficulty,
    ) -> ExerciseSession:
        """Create and activate a new session with empty metric lists."""
        with self._lock:
            if self._session is not None:
                raise SessionAlreadyActiveError(self._session.session_id)

            session = ExerciseSession(
                exercise_type=exercise_type,
                difficulty=difficulty,
                start_time=self._clock(),
            )
            self._session = session

        logger.info(
            "Started session %s (%s, %s)",
            session.session_id,
            exercise_type.value,
            difficulty.value,
        )
        self.events.publish(SESSION_STARTED, session)
        return session

    def end_session(self) -> Optional[ExerciseSession]:
        """
        Finalize the active session.

        Samples submitted before this call are processed first; anything
        submitted afterwards is rejected.

        Returns:
            The finalized session, or None if no session was active
        """
        with self._lock:
            if self._session is None or self._ending:
                return None
            self._ending = True

        if threading.current_thread() is not self._worker:
            if not self.flush(self.drain_timeout):
                logger.warning("Timed out draining sample queue; finalizing anyway")

        with self._lock:
            session = self._session
            session.end_time = self._clock()
            session.overall_score = calculate_overall_score(session)
            self._session = None
            self._ending = False

        logger.info(
            "Ended session %s: %.1fs, score %.1f (%d balance, %d gait samples)",
            session.session_id,
            session.duration,
            session.overall_score,
            len(session.balance_metrics),
            len(session.gait_metrics),
        )
        self.events.publish(SESSION_ENDED, session)
        return session

    # ------------------------------------------------------------------
    # Sample ingest
    # ------------------------------------------------------------------

    def submit_sample(self, sample: MotionSample) -> bool:
        """
        Queue a sample for processing under the current session.

        The put happens under the lock, so a sample accepted here is always
        ahead of the drain marker queued by ``end_session``.

        Returns:
            False if the sample was dropped (no active session, or ending)
        """
        with self._lock:
            if self._session is None or self._ending:
                return False
            self._ensure_worker()
            self._queue.put((self._session.session_id, sample))
        return True

    def apply_if_active(self, session_id: str | None, apply: Callable[[], None]) -> bool:
        """Run ``apply`` under the session lock only if ``session_id`` is still active."""
        with self._lock:
            if self._session is None or self._session.session_id != session_id:
                return False
            apply()
            return True

    def process_sample(self, sample: MotionSample, session_id: str | None = None) -> bool:
        """
        Derive metrics from one sample and append them to the active session.

        Called by the worker for queued samples. A sample tagged for a
        session that is no longer active is discarded.

        Returns:
            True if metrics were appended
        """
        balance = calculate_balance_metrics(sample)
        gait = self.gait_calculator.calculate(sample)
        vr = calculate_vr_tracking(sample)

        with self._lock:
            session = self._session
            if session is None or (session_id is not None and session.session_id != session_id):
                logger.debug("Dropping sample for inactive session %s", session_id)
                return False

            self._recent.append(sample)
            self._current_balance = balance
            self._current_vr = vr
            session.balance_metrics.append(balance)
            if gait is not None:
                self._current_gait = gait
                session.gait_metrics.append(gait)
            session.vr_tracking_data.append(vr)

        self.events.publish(SAMPLE_PROCESSED, balance)
        return True

    def flush(self, timeout: float | None = None) -> bool:
        """Block until every sample queued so far has been processed."""
        if self._worker is None:
            return True
        marker = _Marker()
        self._queue.put(marker)
        return marker.reached.wait(timeout)

    def close(self) -> None:
        """Stop the worker thread after it drains the queue."""
        worker = self._worker
        if worker is None:
            return
        self._queue.put(None)
        worker.join()
        self._worker = None

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _ensure_worker(self) -> None:
        with self._lock:
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(
                    target=self._run, name="sample-worker", daemon=True
                )
                self._worker.start()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    return
                if isinstance(item, _Marker):
                    item.reached.set()
                    continue
                session_id, sample = item
                self.process_sample(sample, session_id=session_id)
            except Exception:
                logger.exception("Failed to process motion sample")
            finally:
                self._queue.task_done()
