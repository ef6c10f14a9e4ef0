"""
Motion Source
=============

Interface to the device-motion data source, plus a synthetic source that
plays back generated or scripted samples at a fixed cadence.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Iterable, Protocol

import numpy as np

from balance_rehab.exceptions import SensorUnavailableError
from balance_rehab.metrics.types import MotionSample, Vector3

logger = logging.getLogger(__name__)

SampleCallback = Callable[[MotionSample], None]


class MotionSource(Protocol):
    """Anything that can stream MotionSample readings."""

    def is_available(self) -> bool: ...

    def start(self, callback: SampleCallback) -> None: ...

    def stop(self) -> None: ...


def generate_samples(
    n_samples: int,
    walking_fraction: float = 0.5,
    interval: float = 0.1,
    start_time: float | None = None,
    seed: int | None = None,
) -> list[MotionSample]:
    """
    Generate a plausible standing/walking sample sequence.

    Standing samples carry user acceleration well under the walking
    threshold; walking samples carry acceleration well above it. The first
    ``n_samples * (1 - walking_fraction)`` samples are standing.
    """
    rng = np.random.default_rng(seed)
    start = time.time() if start_time is None else start_time
    n_standing = int(round(n_samples * (1.0 - walking_fraction)))

    samples = []
    for i in range(n_samples):
        tilt = rng.normal(0.0, 0.03, size=2)
        gravity = Vector3(float(tilt[0]), float(tilt[1]), -1.0)
        if i < n_standing:
            accel = rng.uniform(-0.03, 0.03, size=3)
        else:
            accel = rng.uniform(0.15, 0.35, size=3) * rng.choice([-1.0, 1.0], size=3)
        samples.append(
            MotionSample(
                gravity=gravity,
                user_acceleration=Vector3(*(float(a) for a in accel)),
                timestamp=start + i * interval,
            )
        )
    return samples


class SyntheticMotionSource:
    """Plays a finite sample sequence to a callback on a background thread."""

    def __init__(
        self,
        samples: Iterable[MotionSample] | None = None,
        interval: float = 0.1,
        available: bool = True,
    ):
        self.samples = list(samples) if samples is not None else []
        self.interval = interval
        self.available = available
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()

    def is_available(self) -> bool:
        return self.available

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, callback: SampleCallback) -> None:
        if not self.available:
            raise SensorUnavailableError("Device motion not available")
        if self.is_running:
            return

        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, args=(callback,), name="motion-source", daemon=True
        )
        self._thread.start()
        logger.info("Motion updates started (%.0f Hz)", 1.0 / self.interval if self.interval else 0)

    def stop(self) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        self._thread = None

    def wait(self, timeout: float | None = None) -> bool:
        """Block until every sample has been delivered."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def replay(self, callback: SampleCallback) -> int:
        """Deliver every sample synchronously; returns the count delivered."""
        if not self.available:
            raise SensorUnavailableError("Device motion not available")
        for sample in self.samples:
            callback(sample)
        return len(self.samples)

    def _run(self, callback: SampleCallback) -> None:
        for sample in self.samples:
            if self._stop.is_set():
                break
            callback(sample)
            if self.interval > 0 and self._stop.wait(self.interval):
                break
