"""Tests for motion, VR tracking and health data sources."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from balance_rehab.exceptions import HealthAccessDeniedError, SensorUnavailableError
from balance_rehab.metrics import ExerciseDifficulty, ExerciseSession, ExerciseType, GaitMetrics, is_walking
from balance_rehab.sources import (
    ConnectionStatus,
    InMemoryHealthStore,
    SyntheticMotionSource,
    TrendDirection,
    VRTrackingSource,
    calculate_trend,
    generate_samples,
    summarize_session,
)
from balance_rehab.sources.health import FALLS, HEART_RATE, STEPS


class TestMotionSource:
    """Tests for generated samples and the synthetic motion source."""

    def test_generate_samples_split(self):
        samples = generate_samples(40, walking_fraction=0.25, interval=0.1, start_time=0.0, seed=3)

        assert len(samples) == 40
        assert [is_walking(s) for s in samples] == [False] * 30 + [True] * 10
        assert samples[1].timestamp == pytest.approx(0.1)

    def test_generate_samples_seeded(self):
        assert generate_samples(5, seed=9, start_time=0.0) == generate_samples(5, seed=9, start_time=0.0)

    def test_replay_delivers_in_order(self):
        samples = generate_samples(10, start_time=0.0, seed=1)
        received = []

        count = SyntheticMotionSource(samples, interval=0).replay(received.append)

        assert count == 10
        assert received == samples

    def test_background_stream(self):
        samples = generate_samples(10, start_time=0.0, seed=1)
        received = []
        source = SyntheticMotionSource(samples, interval=0)

        source.start(received.append)
        assert source.wait(timeout=5)
        source.stop()

        assert received == samples
        assert not source.is_running

    def test_unavailable(self):
        source = SyntheticMotionSource([], available=False)

        assert not source.is_available()
        with pytest.raises(SensorUnavailableError):
            source.start(lambda sample: None)


class TestVRTrackingSource:
    """Tests for the simulated VR link."""

    def test_connects_immediately_without_delay(self, walking_sample):
        vr = VRTrackingSource(connect_delay=0, calibration_delay=0)
        assert vr.track(walking_sample) is None

        vr.start()

        assert vr.status is ConnectionStatus.CONNECTED
        data = vr.track(walking_sample)
        assert data is not None
        assert vr.tracking_data == data

    def test_connecting_state(self):
        vr = VRTrackingSource(connect_delay=60)
        vr.start()

        assert vr.status is ConnectionStatus.CONNECTING
        assert not vr.is_tracking

        vr.stop()
        assert vr.status is ConnectionStatus.DISCONNECTED

    def test_unavailable_sets_error(self):
        vr = VRTrackingSource(available=False)

        with pytest.raises(SensorUnavailableError):
            vr.start()
        assert vr.status is ConnectionStatus.ERROR

    def test_calibration_callback(self):
        vr = VRTrackingSource(connect_delay=0, calibration_delay=0)
        vr.start()
        results = []
        try:
            result = vr.calibrate_async("s1", on_done=results.append).result(timeout=5)
        finally:
            vr.shutdown()

        assert result.success
        assert result.session_id == "s1"
        assert results == [result]

    def test_calibration_fails_when_unavailable(self):
        vr = VRTrackingSource(calibration_delay=0, available=False)
        try:
            result = vr.calibrate_async("s1").result(timeout=5)
        finally:
            vr.shutdown()

        assert not result.success


def _gait_session(duration: float = 60.0) -> ExerciseSession:
    session = ExerciseSession(
        ExerciseType.GAIT_TRAINING,
        ExerciseDifficulty.BEGINNER,
        start_time=1_700_000_000.0,
        end_time=1_700_000_000.0 + duration,
    )
    for t in range(2):
        session.gait_metrics.append(
            GaitMetrics.from_step(timestamp=float(t), step_length=0.6, step_time=1.0, gait_symmetry=0.9)
        )
    return session


class TestHealthSummary:
    """Tests for summarize_session and calculate_trend."""

    def test_summary_values(self):
        summary = summarize_session(_gait_session())

        assert summary.step_count == 120
        assert summary.distance_m == pytest.approx(72.0)
        assert summary.calories == pytest.approx(4.0)

    def test_summary_without_gait(self):
        session = ExerciseSession(
            ExerciseType.STATIC_BALANCE, ExerciseDifficulty.BEGINNER, start_time=0.0, end_time=120.0
        )
        summary = summarize_session(session)

        assert summary.step_count == 0
        assert summary.distance_m == 0.0
        assert summary.calories == pytest.approx(4.0)

    @pytest.mark.parametrize(
        "values, expected",
        [
            ([100, 100, 100, 200, 200, 200], TrendDirection.INCREASING),
            ([200, 200, 200, 100, 100, 100], TrendDirection.DECREASING),
            ([100, 105, 100, 104], TrendDirection.STABLE),
            ([0, 0, 50], TrendDirection.STABLE),
            ([10], TrendDirection.STABLE),
        ],
    )
    def test_trend(self, values, expected):
        assert calculate_trend(values, window=3) is expected


class TestHealthStore:
    """Tests for InMemoryHealthStore."""

    def test_unauthorized_write_rejected(self):
        store = InMemoryHealthStore()

        with pytest.raises(HealthAccessDeniedError):
            store.save_session(summarize_session(_gait_session()))

    def test_authorization_unavailable(self):
        store = InMemoryHealthStore(available=False)
        assert store.request_authorization() is False
        assert not store.is_authorized

    def test_session_written_once(self):
        store = InMemoryHealthStore(authorized=True)
        summary = summarize_session(_gait_session())

        store.save_session(summary)
        with pytest.raises(ValueError):
            store.save_session(summary)

    def test_query_range(self):
        store = InMemoryHealthStore()
        store.request_authorization(True)
        day = datetime(2024, 3, 1)
        store.add_sample(STEPS, (day + timedelta(hours=9)).timestamp(), 1000)
        store.add_sample(STEPS, (day + timedelta(days=1, hours=9)).timestamp(), 3000)

        found = store.query(STEPS, day, day + timedelta(days=1))

        assert [s.value for s in found] == [1000]

    def test_unknown_kind(self):
        store = InMemoryHealthStore(authorized=True)
        with pytest.raises(ValueError):
            store.add_sample("blood_sugar", 0.0, 1.0)

    def test_trends_and_export(self):
        store = InMemoryHealthStore(authorized=True)
        start = datetime(2024, 3, 1)
        for i, steps in enumerate([1000] * 7 + [3000] * 7):
            ts = (start + timedelta(days=i, hours=10)).timestamp()
            store.add_sample(STEPS, ts, steps)
            store.add_sample(HEART_RATE, ts, 70)
        store.add_sample(FALLS, (start + timedelta(days=2, hours=8)).timestamp(), 1)
        end = start + timedelta(days=13)

        trends = store.analyze_trends(start, end)
        exported = store.export(start, end)

        assert trends.average_steps_per_day == pytest.approx(2000)
        assert trends.average_heart_rate == pytest.approx(70)
        assert trends.fall_count == 1
        assert trends.step_trend is TrendDirection.INCREASING
        assert exported["step_counts"] == [1000] * 7 + [3000] * 7
        assert exported["fall_count"] == 1
