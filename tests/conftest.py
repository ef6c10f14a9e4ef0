"""Pytest fixtures for balance-rehab tests."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from balance_rehab.core.config import (
    DatabaseConfig,
    GaitConfig,
    RecommendationConfig,
    Settings,
    VRConfig,
)
from balance_rehab.core.database import (
    build_engine,
    build_session_factory,
    init_db,
    reset_engine,
)
from balance_rehab.metrics.types import MotionSample


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_settings(temp_dir: Path) -> Settings:
    """Settings with a temporary database and no artificial delays."""
    return Settings(
        database=DatabaseConfig(url=f"sqlite:///{temp_dir / 'rehab.db'}"),
        gait=GaitConfig(seed=7),
        recommendation=RecommendationConfig(latency_seconds=0.0),
        vr=VRConfig(connect_delay=0.0, calibration_delay=0.0),
    )


@pytest.fixture
def test_db(temp_dir: Path):
    """Session factory bound to a fresh SQLite database."""
    engine = build_engine(f"sqlite:///{temp_dir / 'test.db'}")
    init_db(engine)

    yield build_session_factory(engine)

    # Cleanup
    engine.dispose()
    reset_engine()


@pytest.fixture
def store(test_db):
    from balance_rehab.storage.store import SessionStore

    return SessionStore(test_db)


def make_sample(
    gravity: tuple[float, float, float] = (0.0, 0.0, -1.0),
    acceleration: tuple[float, float, float] = (0.0, 0.0, 0.0),
    timestamp: float = 1_700_000_000.0,
) -> MotionSample:
    return MotionSample.from_components(gravity, acceleration, timestamp)


@pytest.fixture
def still_sample() -> MotionSample:
    """Upright and motionless: below the walking gate."""
    return make_sample(gravity=(0.01, 0.02, -1.0), acceleration=(0.01, 0.01, 0.01))


@pytest.fixture
def walking_sample() -> MotionSample:
    """Clearly above the walking gate."""
    return make_sample(gravity=(0.05, 0.03, -1.0), acceleration=(0.2, 0.1, 0.15))


@pytest.fixture
def sample_factory():
    """Builder for MotionSample from plain tuples."""
    return make_sample
