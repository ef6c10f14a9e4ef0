"""Balance metrics from device orientation and acceleration."""

from __future__ import annotations

from .types import BalanceMetrics, MotionSample, Point2D

# Scale factors applied to the unit gravity vector
COP_SCALE = 100.0
SWAY_AREA_SCALE = 100.0
STABILITY_PENALTY = 10.0
RISK_SWAY_WEIGHT = 20.0
RISK_VELOCITY_WEIGHT = 50.0


def calculate_balance_metrics(sample: MotionSample) -> BalanceMetrics:
    """
    Derive balance metrics from a single motion sample.

    Device tilt (gravity x/y) stands in for centre-of-pressure displacement,
    and planar user acceleration stands in for sway velocity.

    Args:
        sample: Motion reading

    Returns:
        BalanceMetrics with stability clamped at 0 and fall risk clamped at 100
    """
    gravity = sample.gravity
    acceleration = sample.user_acceleration

    center_of_pressure = Point2D(x=gravity.x * COP_SCALE, y=gravity.y * COP_SCALE)
    sway_area = gravity.planar_magnitude * SWAY_AREA_SCALE
    sway_velocity = acceleration.planar_magnitude

    stability_score = max(0.0, 100.0 - sway_area * STABILITY_PENALTY)
    fall_risk_index = min(100.0, sway_area * RISK_SWAY_WEIGHT + sway_velocity * RISK_VELOCITY_WEIGHT)

    return BalanceMetrics(
        timestamp=sample.timestamp,
        center_of_pressure=center_of_pressure,
        sway_area=sway_area,
        sway_velocity=sway_velocity,
        stability_score=stability_score,
        fall_risk_index=fall_risk_index,
    )
