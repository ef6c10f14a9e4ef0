"""
Metric Data Types
=================

Value types for motion input and the metric records derived from it,
plus the exercise catalogue enums shared by sessions and recommendations.
"""

from __future__ import annotations

import math
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ExerciseType(Enum):
    """Rehabilitation exercise categories."""

    STATIC_BALANCE = "Static Balance"
    DYNAMIC_BALANCE = "Dynamic Balance"
    GAIT_TRAINING = "Gait Training"
    OBSTACLE_COURSE = "Obstacle Course"
    DUAL_TASK = "Dual Task"
    VESTIBULAR_TRAINING = "Vestibular Training"

    @property
    def calories_per_minute(self) -> float:
        """Approximate energy expenditure used for health summaries."""
        return _CALORIES_PER_MINUTE[self]


_CALORIES_PER_MINUTE = {
    ExerciseType.STATIC_BALANCE: 2.0,
    ExerciseType.DYNAMIC_BALANCE: 3.5,
    ExerciseType.GAIT_TRAINING: 4.0,
    ExerciseType.OBSTACLE_COURSE: 5.0,
    ExerciseType.DUAL_TASK: 4.5,
    ExerciseType.VESTIBULAR_TRAINING: 2.5,
}


class ExerciseDifficulty(Enum):
    """Difficulty tiers, declared lowest to highest."""

    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    EXPERT = "Expert"

    @property
    def level(self) -> int:
        return _DIFFICULTY_ORDER.index(self)

    @property
    def multiplier(self) -> float:
        return (0.5, 1.0, 1.5, 2.0)[self.level]

    def step_up(self) -> ExerciseDifficulty:
        """Next tier up, saturating at the top."""
        return _DIFFICULTY_ORDER[min(self.level + 1, len(_DIFFICULTY_ORDER) - 1)]

    def step_down(self) -> ExerciseDifficulty:
        """Next tier down, saturating at the bottom."""
        return _DIFFICULTY_ORDER[max(self.level - 1, 0)]


_DIFFICULTY_ORDER = list(ExerciseDifficulty)


@dataclass(frozen=True)
class Vector3:
    """Three-axis reading (g units)."""

    x: float
    y: float
    z: float

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x**2 + self.y**2 + self.z**2)

    @property
    def planar_magnitude(self) -> float:
        """Magnitude of the x/y components only."""
        return math.sqrt(self.x**2 + self.y**2)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}


@dataclass(frozen=True)
class Point2D:
    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class Vector2D:
    dx: float
    dy: float

    def to_dict(self) -> dict[str, float]:
        return {"dx": self.dx, "dy": self.dy}


@dataclass(frozen=True)
class MotionSample:
    """One device-motion reading from the motion source."""

    gravity: Vector3
    user_acceleration: Vector3
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def from_components(
        cls,
        gravity: tuple[float, float, float],
        acceleration: tuple[float, float, float],
        timestamp: float | None = None,
    ) -> MotionSample:
        """Build a sample from plain (x, y, z) tuples."""
        return cls(
            gravity=Vector3(*gravity),
            user_acceleration=Vector3(*acceleration),
            timestamp=time.time() if timestamp is None else timestamp,
        )


@dataclass(frozen=True)
class BalanceMetrics:
    """Postural balance metrics derived from one motion sample."""

    timestamp: float
    center_of_pressure: Point2D
    sway_area: float
    sway_velocity: float
    stability_score: float  # 0-100, higher is better
    fall_risk_index: float  # 0-100, higher is worse

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "center_of_pressure": self.center_of_pressure.to_dict(),
            "sway_area": self.sway_area,
            "sway_velocity": self.sway_velocity,
            "stability_score": self.stability_score,
            "fall_risk_index": self.fall_risk_index,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BalanceMetrics:
        return cls(
            timestamp=data["timestamp"],
            center_of_pressure=Point2D(**data["center_of_pressure"]),
            sway_area=data["sway_area"],
            sway_velocity=data["sway_velocity"],
            stability_score=data["stability_score"],
            fall_risk_index=data["fall_risk_index"],
        )


@dataclass(frozen=True)
class GaitMetrics:
    """Gait metrics for one detected walking sample.

    cadence, stride_length and walking_speed are functions of step_length
    and step_time; build instances through :meth:`from_step`.
    """

    timestamp: float
    step_length: float  # m
    step_time: float  # s
    cadence: float  # steps/min
    gait_symmetry: float  # 0-1
    stride_length: float  # m
    walking_speed: float  # m/s

    @classmethod
    def from_step(
        cls,
        timestamp: float,
        step_length: float,
        step_time: float,
        gait_symmetry: float,
    ) -> GaitMetrics:
        return cls(
            timestamp=timestamp,
            step_length=step_length,
            step_time=step_time,
            cadence=60.0 / step_time,
            gait_symmetry=gait_symmetry,
            stride_length=step_length * 2,
            walking_speed=step_length / step_time,
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "timestamp": self.timestamp,
            "step_length": self.step_length,
            "step_time": self.step_time,
            "cadence": self.cadence,
            "gait_symmetry": self.gait_symmetry,
            "stride_length": self.stride_length,
            "walking_speed": self.walking_speed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, float]) -> GaitMetrics:
        return cls(**data)


@dataclass(frozen=True)
class VRTrackingData:
    """Simulated VR body tracking derived from device motion."""

    timestamp: float
    foot_position: Point2D
    torso_position: Point2D
    foot_velocity: Vector2D
    torso_velocity: Vector2D
    balance_offset: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "foot_position": self.foot_position.to_dict(),
            "torso_position": self.torso_position.to_dict(),
            "foot_velocity": self.foot_velocity.to_dict(),
            "torso_velocity": self.torso_velocity.to_dict(),
            "balance_offset": self.balance_offset,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VRTrackingData:
        return cls(
            timestamp=data["timestamp"],
            foot_position=Point2D(**data["foot_position"]),
            torso_position=Point2D(**data["torso_position"]),
            foot_velocity=Vector2D(**data["foot_velocity"]),
            torso_velocity=Vector2D(**data["torso_velocity"]),
            balance_offset=data["balance_offset"],
        )


@dataclass
class ExerciseSession:
    """One exercise session and the metrics collected during it."""

    exercise_type: ExerciseType
    difficulty: ExerciseDifficulty
    start_time: float = field(default_factory=time.time)
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    end_time: float | None = None
    balance_metrics: list[BalanceMetrics] = field(default_factory=list)
    gait_metrics: list[GaitMetrics] = field(default_factory=list)
    vr_tracking_data: list[VRTrackingData] = field(default_factory=list)
    overall_score: float = 0.0

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    @property
    def duration(self) -> float:
        """Seconds between start and end (0 while active)."""
        if self.end_time is None:
            return 0.0
        return self.end_time - self.start_time

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "exercise_type": self.exercise_type.value,
            "difficulty": self.difficulty.value,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "overall_score": self.overall_score,
            "balance_metrics": [m.to_dict() for m in self.balance_metrics],
            "gait_metrics": [m.to_dict() for m in self.gait_metrics],
            "vr_tracking_data": [m.to_dict() for m in self.vr_tracking_data],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExerciseSession:
        return cls(
            session_id=data["session_id"],
            exercise_type=ExerciseType(data["exercise_type"]),
            difficulty=ExerciseDifficulty(data["difficulty"]),
            start_time=data["start_time"],
            end_time=data.get("end_time"),
            overall_score=data.get("overall_score", 0.0),
            balance_metrics=[BalanceMetrics.from_dict(m) for m in data.get("balance_metrics", [])],
            gait_metrics=[GaitMetrics.from_dict(m) for m in data.get("gait_metrics", [])],
            vr_tracking_data=[VRTrackingData.from_dict(m) for m in data.get("vr_tracking_data", [])],
        )


@dataclass
class RehabilitationProgress:
    """Longitudinal statistics over a user's full session history."""

    user_id: str
    start_date: float = field(default_factory=time.time)
    current_level: ExerciseDifficulty = ExerciseDifficulty.BEGINNER
    total_sessions: int = 0
    average_stability_score: float = 0.0
    average_gait_score: float = 0.0
    fall_risk_trend: list[float] = field(default_factory=list)
    improvement_rate: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "start_date": self.start_date,
            "current_level": self.current_level.value,
            "total_sessions": self.total_sessions,
            "average_stability_score": self.average_stability_score,
            "average_gait_score": self.average_gait_score,
            "fall_risk_trend": list(self.fall_risk_trend),
            "improvement_rate": self.improvement_rate,
        }


@dataclass
class MLPrediction:
    """Recommendation produced at session start."""

    predicted_difficulty: ExerciseDifficulty
    confidence: float  # clamped to [0.3, 0.95]
    recommended_exercise: ExerciseType
    risk_assessment: str
    next_session_recommendation: str
    session_id: str | None = None
    created_at: float = field(default_factory=time.time)
    stale: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "predicted_difficulty": self.predicted_difficulty.value,
            "confidence": self.confidence,
            "recommended_exercise": self.recommended_exercise.value,
            "risk_assessment": self.risk_assessment,
            "next_session_recommendation": self.next_session_recommendation,
            "session_id": self.session_id,
            "created_at": self.created_at,
            "stale": self.stale,
        }
