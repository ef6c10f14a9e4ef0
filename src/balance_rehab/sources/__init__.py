"""External data sources and sinks: motion, VR tracking and health data."""

from .health import (
    HealthDataSink,
    HealthTrends,
    InMemoryHealthStore,
    SessionHealthSummary,
    TrendDirection,
    calculate_trend,
    summarize_session,
)
from .motion import MotionSource, SyntheticMotionSource, generate_samples
from .vr import CalibrationResult, ConnectionStatus, VRTrackingSource

__all__ = [
    "CalibrationResult",
    "ConnectionStatus",
    "HealthDataSink",
    "HealthTrends",
    "InMemoryHealthStore",
    "MotionSource",
    "SessionHealthSummary",
    "SyntheticMotionSource",
    "TrendDirection",
    "VRTrackingSource",
    "calculate_trend",
    "generate_samples",
    "summarize_session",
]
