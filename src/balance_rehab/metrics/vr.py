"""Simulated VR body tracking derived from device motion."""

from __future__ import annotations

from .types import MotionSample, Point2D, Vector2D, VRTrackingData

FOOT_POSITION_SCALE = 50.0
TORSO_POSITION_SCALE = 30.0
FOOT_VELOCITY_SCALE = 1.0
TORSO_VELOCITY_SCALE = 0.5


def calculate_vr_tracking(sample: MotionSample) -> VRTrackingData:
    """Map one motion sample onto foot/torso positions and velocities."""
    gravity = sample.gravity
    acceleration = sample.user_acceleration

    return VRTrackingData(
        timestamp=sample.timestamp,
        foot_position=Point2D(gravity.x * FOOT_POSITION_SCALE, gravity.y * FOOT_POSITION_SCALE),
        torso_position=Point2D(gravity.x * TORSO_POSITION_SCALE, gravity.y * TORSO_POSITION_SCALE),
        foot_velocity=Vector2D(
            acceleration.x * FOOT_VELOCITY_SCALE, acceleration.y * FOOT_VELOCITY_SCALE
        ),
        torso_velocity=Vector2D(
            acceleration.x * TORSO_VELOCITY_SCALE, acceleration.y * TORSO_VELOCITY_SCALE
        ),
        balance_offset=gravity.planar_magnitude,
    )
