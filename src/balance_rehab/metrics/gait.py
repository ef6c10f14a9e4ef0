"""
Gait Metrics
============

Walking detection from acceleration magnitude, and gait metric generation
for samples that pass the walking gate.

Step length, step time and symmetry are drawn from bounded ranges rather
than estimated from the motion signal. This is a placeholder for a real
gait estimator; pass a seed for reproducible output.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .types import GaitMetrics, MotionSample

DEFAULT_WALKING_THRESHOLD = 0.1


def is_walking(sample: MotionSample, threshold: float = DEFAULT_WALKING_THRESHOLD) -> bool:
    """True iff the 3-axis user acceleration magnitude is strictly above threshold."""
    return sample.user_acceleration.magnitude > threshold


class GaitCalculator:
    """Produce gait metrics for walking samples."""

    def __init__(
        self,
        walking_threshold: float = DEFAULT_WALKING_THRESHOLD,
        step_length_range: tuple[float, float] = (0.5, 0.8),
        step_time_range: tuple[float, float] = (0.8, 1.2),
        symmetry_range: tuple[float, float] = (0.7, 1.0),
        seed: int | None = None,
    ):
        self.walking_threshold = walking_threshold
        self.step_length_range = step_length_range
        self.step_time_range = step_time_range
        self.symmetry_range = symmetry_range
        self._rng = np.random.default_rng(seed)

    @classmethod
    def from_settings(cls, settings) -> GaitCalculator:
        return cls(
            walking_threshold=settings.session.walking_threshold,
            step_length_range=settings.gait.step_length_range,
            step_time_range=settings.gait.step_time_range,
            symmetry_range=settings.gait.symmetry_range,
            seed=settings.gait.seed,
        )

    def calculate(self, sample: MotionSample) -> Optional[GaitMetrics]:
        """
        Compute gait metrics for one sample.

        Returns:
            GaitMetrics, or None when the sample does not pass the walking gate
        """
        if not is_walking(sample, self.walking_threshold):
            return None

        step_length = float(self._rng.uniform(*self.step_length_range))
        step_time = float(self._rng.uniform(*self.step_time_range))
        gait_symmetry = float(self._rng.uniform(*self.symmetry_range))

        return GaitMetrics.from_step(
            timestamp=sample.timestamp,
            step_length=step_length,
            step_time=step_time,
            gait_symmetry=gait_symmetry,
        )
