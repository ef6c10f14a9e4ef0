"""Tests for the rehabilitation service orchestration."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from balance_rehab.exceptions import SessionAlreadyActiveError
from balance_rehab.metrics import ExerciseDifficulty, ExerciseType
from balance_rehab.recommendation import RecommendationEngine
from balance_rehab.session import ADVISORY, PREDICTION_READY, PROGRESS_UPDATED, RehabilitationService
from balance_rehab.sources import (
    InMemoryHealthStore,
    SyntheticMotionSource,
    VRTrackingSource,
    generate_samples,
)
from balance_rehab.sources.health import STEPS
from balance_rehab.storage.store import SessionStore


@pytest.fixture
def make_service(test_settings, store):
    """Factory for services sharing one store; all are closed on teardown."""
    created = []

    def factory(**kwargs):
        kwargs.setdefault("store", store)
        service = RehabilitationService(settings=test_settings, **kwargs)
        created.append(service)
        return service

    yield factory

    for service in created:
        service.close()


def _motion(n_samples: int = 20, seed: int = 1) -> SyntheticMotionSource:
    return SyntheticMotionSource(
        generate_samples(n_samples, walking_fraction=0.5, start_time=0.0, seed=seed), interval=0
    )


def _run(service: RehabilitationService, exercise=ExerciseType.GAIT_TRAINING):
    service.start_session(exercise, ExerciseDifficulty.BEGINNER)
    if service.motion_source is not None:
        assert service.motion_source.wait(timeout=5)
    return service.end_session()


class TestSessionFlow:
    """Tests for the start-stream-end cycle."""

    def test_full_session(self, make_service, store, test_settings):
        health = InMemoryHealthStore(authorized=True)
        service = make_service(
            motion_source=_motion(),
            vr_source=VRTrackingSource.from_settings(test_settings),
            health_store=health,
        )
        events = []
        service.events.subscribe(PROGRESS_UPDATED, lambda event, payload: events.append(payload))

        session = _run(service)

        assert len(session.balance_metrics) == 20
        assert len(session.gait_metrics) == 10
        assert service.history == (session,)
        assert not service.is_session_active
        assert service.progress.total_sessions == 1
        assert events == [service.progress]
        assert service.advisories == []

        stored = store.list_sessions(test_settings.session.user_id)
        assert [s.session_id for s in stored] == [session.session_id]
        assert store.load_progress(test_settings.session.user_id).total_sessions == 1

        end = datetime.fromtimestamp(session.end_time)
        written = health.query(STEPS, end - timedelta(seconds=1), end + timedelta(seconds=1))
        assert len(written) == 1

    def test_end_without_start(self, make_service):
        service = make_service()
        assert service.end_session() is None
        assert service.history == ()

    def test_double_start_rejected(self, make_service):
        service = make_service()
        service.start_session(ExerciseType.STATIC_BALANCE, ExerciseDifficulty.BEGINNER)

        with pytest.raises(SessionAlreadyActiveError):
            service.start_session(ExerciseType.DUAL_TASK, ExerciseDifficulty.EXPERT)

        assert service.current_session.exercise_type is ExerciseType.STATIC_BALANCE

    def test_history_accumulates(self, make_service):
        service = make_service()
        for _ in range(3):
            _run(service)

        assert len(service.history) == 3
        assert service.progress.total_sessions == 3
        assert len(service.progress.fall_risk_trend) == 3

    def test_load_restores_state(self, make_service, test_settings):
        first = make_service(motion_source=_motion())
        session = _run(first)

        second = make_service()
        second.load()

        assert [s.session_id for s in second.history] == [session.session_id]
        assert second.progress.total_sessions == 1
        assert second.progress.start_date == session.start_time

    def test_close_ends_active_session(self, make_service):
        service = make_service()
        service.start_session(ExerciseType.STATIC_BALANCE, ExerciseDifficulty.BEGINNER)

        service.close()

        assert not service.is_session_active
        assert len(service.history) == 1


class TestAdvisories:
    """Sensor and health failures degrade to advisories."""

    def test_motion_unavailable(self, make_service):
        service = make_service(motion_source=SyntheticMotionSource([], available=False))
        seen = []
        service.events.subscribe(ADVISORY, lambda event, payload: seen.append(payload))

        service.start_session(ExerciseType.STATIC_BALANCE, ExerciseDifficulty.BEGINNER)

        assert service.is_session_active
        assert seen == ["Device motion not available"]
        session = service.end_session()
        assert session.balance_metrics == []
        assert session.overall_score == 0.0

    def test_vr_unavailable(self, make_service):
        service = make_service(vr_source=VRTrackingSource(available=False))

        service.start_session(ExerciseType.STATIC_BALANCE, ExerciseDifficulty.BEGINNER)

        assert service.advisories == ["VR tracking device not available"]

    def test_health_unauthorized(self, make_service):
        service = make_service(health_store=InMemoryHealthStore(authorized=False))

        session = _run(service)

        assert service.history == (session,)
        assert len(service.advisories) == 1
        assert service.advisories[0].startswith("Health sync skipped")


class TestAsyncResults:
    """Recommendation and calibration results are bound to their session."""

    def test_prediction_for_active_session(self, make_service):
        service = make_service()
        ready = []
        service.events.subscribe(PREDICTION_READY, lambda event, payload: ready.append(payload))

        session = service.start_session(ExerciseType.STATIC_BALANCE, ExerciseDifficulty.BEGINNER)
        prediction = service.wait_for_prediction(timeout=5)

        assert prediction is not None
        assert prediction.session_id == session.session_id
        assert service.prediction is prediction
        assert ready == [prediction]

    def test_prediction_after_session_end_is_stale(self, make_service):
        service = make_service(engine=RecommendationEngine(latency_seconds=0.2))

        service.start_session(ExerciseType.STATIC_BALANCE, ExerciseDifficulty.BEGINNER)
        service.end_session()

        assert service.wait_for_prediction(timeout=5) is None
        assert service.prediction is None
        assert service.engine.last_prediction.stale

    def test_calibration(self, make_service):
        service = make_service(vr_source=VRTrackingSource(connect_delay=0, calibration_delay=0))
        service.start_session(ExerciseType.STATIC_BALANCE, ExerciseDifficulty.BEGINNER)

        result = service.calibrate_vr().result(timeout=5)

        assert result.success
        assert service.vr_calibrated is True

    def test_calibration_after_session_end_is_ignored(self, make_service):
        service = make_service(vr_source=VRTrackingSource(connect_delay=0, calibration_delay=0.2))
        service.start_session(ExerciseType.STATIC_BALANCE, ExerciseDifficulty.BEGINNER)

        future = service.calibrate_vr()
        service.end_session()
        future.result(timeout=5)

        assert service.vr_calibrated is None

    def test_calibration_without_vr(self, make_service):
        service = make_service()
        assert service.calibrate_vr() is None
        assert service.advisories == ["No VR tracking source configured"]


class TestNextDifficulty:
    """Tests for adaptive difficulty after a session."""

    def test_steps_up_after_good_session(self, make_service, still_sample):
        service = make_service()
        service.start_session(ExerciseType.STATIC_BALANCE, ExerciseDifficulty.INTERMEDIATE)
        service.submit_sample(still_sample)
        session = service.end_session()
        session.overall_score = 90.0

        assert service.next_difficulty(session) is ExerciseDifficulty.ADVANCED

    def test_steps_down_after_poor_session(self, make_service):
        service = make_service()
        session = _run(service)

        # No samples: score 0 is poor performance
        assert service.next_difficulty(session) is ExerciseDifficulty.BEGINNER


class _FailingStore(SessionStore):
    """Store whose session log rejects every write."""

    def append_session(self, user_id, session):
        raise OperationalError("INSERT INTO sessions", {}, Exception("disk full"))


class TestStoreFailure:
    """A failed save does not abort session finalization."""

    def test_end_session_with_failing_store(self, make_service, test_db):
        health = InMemoryHealthStore(authorized=True)
        service = make_service(store=_FailingStore(test_db), health_store=health)
        training_before = len(service.engine.training_data)

        session = _run(service)

        assert service.history == (session,)
        assert service.progress.total_sessions == 1
        assert len(service.engine.training_data) == training_before + 1
        assert len(service.advisories) == 1
        assert service.advisories[0].startswith(f"Session {session.session_id} not saved")
        assert "disk full" in service.advisories[0]
        end = datetime.fromtimestamp(session.end_time)
        assert health.query(STEPS, end - timedelta(seconds=1), end + timedelta(seconds=1))


class TestPredictionLifetime:
    """A prediction is only visible while its session is active."""

    def test_new_session_clears_previous_prediction(self, make_service):
        service = make_service()
        first = service.start_session(ExerciseType.STATIC_BALANCE, ExerciseDifficulty.BEGINNER)
        assert service.wait_for_prediction(timeout=5).session_id == first.session_id
        service.end_session()

        service.engine.latency_seconds = 0.2
        second = service.start_session(ExerciseType.DUAL_TASK, ExerciseDifficulty.BEGINNER)

        assert service.prediction is None
        assert service.wait_for_prediction(timeout=5).session_id == second.session_id
        assert service.prediction.session_id == second.session_id

    def test_prediction_for_ended_session_not_applied(self, make_service):
        service = make_service()
        session = service.start_session(ExerciseType.STATIC_BALANCE, ExerciseDifficulty.BEGINNER)
        service.wait_for_prediction(timeout=5)
        service.end_session()
        late = service.engine.predict(None, None, service.history, session_id=session.session_id)

        service._on_prediction(late)

        assert late.stale
        assert service.prediction is not late
