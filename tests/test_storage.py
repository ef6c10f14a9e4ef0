"""Tests for the session store."""

from __future__ import annotations

import pytest

from balance_rehab.metrics import (
    ExerciseDifficulty,
    ExerciseSession,
    ExerciseType,
    GaitCalculator,
    calculate_balance_metrics,
    calculate_vr_tracking,
)
from balance_rehab.session import calculate_progress


def _finished(start: float, score: float = 50.0, sample=None) -> ExerciseSession:
    session = ExerciseSession(
        ExerciseType.DYNAMIC_BALANCE,
        ExerciseDifficulty.INTERMEDIATE,
        start_time=start,
        end_time=start + 90,
    )
    if sample is not None:
        session.balance_metrics.append(calculate_balance_metrics(sample))
        gait = GaitCalculator(seed=4).calculate(sample)
        if gait is not None:
            session.gait_metrics.append(gait)
        session.vr_tracking_data.append(calculate_vr_tracking(sample))
    session.overall_score = score
    return session


class TestSessionLog:
    """Tests for append_session and list_sessions."""

    def test_round_trip(self, store, walking_sample):
        session = _finished(1000.0, 64.5, walking_sample)
        store.append_session("u1", session)

        [restored] = store.list_sessions("u1")

        assert restored.session_id == session.session_id
        assert restored.exercise_type is ExerciseType.DYNAMIC_BALANCE
        assert restored.difficulty is ExerciseDifficulty.INTERMEDIATE
        assert restored.duration == 90
        assert restored.overall_score == 64.5
        assert restored.balance_metrics == session.balance_metrics
        assert restored.gait_metrics == session.gait_metrics
        assert restored.vr_tracking_data == session.vr_tracking_data

    def test_chronological_order(self, store):
        for start in (300.0, 100.0, 200.0):
            store.append_session("u1", _finished(start))

        assert [s.start_time for s in store.list_sessions("u1")] == [100.0, 200.0, 300.0]

    def test_limit_keeps_most_recent(self, store):
        for start in (100.0, 200.0, 300.0):
            store.append_session("u1", _finished(start))

        assert [s.start_time for s in store.list_sessions("u1", limit=2)] == [200.0, 300.0]

    def test_users_isolated(self, store):
        store.append_session("u1", _finished(100.0))
        store.append_session("u2", _finished(200.0))

        assert store.count_sessions("u1") == 1
        assert store.count_sessions("u2") == 1
        assert store.count_sessions("nobody") == 0
        assert store.list_sessions("nobody") == []

    def test_duplicate_rejected(self, store):
        session = _finished(100.0)
        store.append_session("u1", session)

        with pytest.raises(ValueError):
            store.append_session("u1", session)
        assert store.count_sessions("u1") == 1

    def test_active_session_rejected(self, store):
        session = ExerciseSession(ExerciseType.DUAL_TASK, ExerciseDifficulty.BEGINNER)

        with pytest.raises(ValueError):
            store.append_session("u1", session)


class TestProgressRecord:
    """Tests for save_progress and load_progress."""

    def test_missing(self, store):
        assert store.load_progress("u1") is None

    def test_upsert(self, store, still_sample):
        history = [_finished(100.0, 50.0, still_sample)]
        store.save_progress(calculate_progress("u1", history))

        history.append(_finished(200.0, 70.0, still_sample))
        progress = calculate_progress("u1", history)
        store.save_progress(progress)

        loaded = store.load_progress("u1")
        assert loaded.total_sessions == 2
        assert loaded.start_date == 100.0
        assert loaded.current_level is ExerciseDifficulty.INTERMEDIATE
        assert loaded.fall_risk_trend == pytest.approx(progress.fall_risk_trend)
        assert loaded.improvement_rate == pytest.approx(40.0)
        assert loaded.average_gait_score == 0.0
