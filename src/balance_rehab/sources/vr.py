"""Simulated VR headset link: connection state, tracking and calibration."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from balance_rehab.exceptions import SensorUnavailableError
from balance_rehab.metrics.types import MotionSample, VRTrackingData
from balance_rehab.metrics.vr import calculate_vr_tracking

logger = logging.getLogger(__name__)


class ConnectionStatus(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass
class CalibrationResult:
    session_id: str | None
    success: bool


class VRTrackingSource:
    """
    Simulated VR tracking link.

    ``start`` moves to CONNECTING and then, after ``connect_delay``, to
    CONNECTED. While connected, ``track`` turns motion samples into
    VRTrackingData on the same cadence as the motion source.
    """

    def __init__(
        self,
        connect_delay: float = 1.5,
        calibration_delay: float = 2.0,
        available: bool = True,
    ):
        self.connect_delay = connect_delay
        self.calibration_delay = calibration_delay
        self.available = available
        self.status = ConnectionStatus.DISCONNECTED
        self.tracking_data: VRTrackingData | None = None
        self._timer: threading.Timer | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings, available: bool = True) -> VRTrackingSource:
        return cls(
            connect_delay=settings.vr.connect_delay,
            calibration_delay=settings.vr.calibration_delay,
            available=available,
        )

    @property
    def is_tracking(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED

    def is_available(self) -> bool:
        return self.available

    def start(self) -> None:
        if not self.available:
            with self._lock:
                self.status = ConnectionStatus.ERROR
            raise SensorUnavailableError("VR tracking device not available")

        with self._lock:
            if self.status in (ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED):
                return
            self.status = ConnectionStatus.CONNECTING

        if self.connect_delay > 0:
            self._timer = threading.Timer(self.connect_delay, self._connected)
            self._timer.daemon = True
            self._timer.start()
        else:
            self._connected()

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        with self._lock:
            self.status = ConnectionStatus.DISCONNECTED
            self.tracking_data = None

    def track(self, sample: MotionSample) -> VRTrackingData | None:
        """Update tracking from a motion sample; None unless connected."""
        if not self.is_tracking:
            return None
        data = calculate_vr_tracking(sample)
        self.tracking_data = data
        return data

    def calibrate_async(
        self,
        session_id: str | None = None,
        on_done: Callable[[CalibrationResult], None] | None = None,
    ) -> Future:
        """Run calibration in the background; resolves to a CalibrationResult."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="vr-calibration")
        return self._executor.submit(self._calibrate, session_id, on_done)

    def shutdown(self) -> None:
        self.stop()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _calibrate(self, session_id, on_done) -> CalibrationResult:
        if self.calibration_delay > 0:
            time.sleep(self.calibration_delay)
        success = self.available and self.status != ConnectionStatus.ERROR
        logger.info("VR calibration for %s %s", session_id, "succeeded" if success else "failed")
        result = CalibrationResult(session_id=session_id, success=success)
        if on_done is not None:
            on_done(result)
        return result

    def _connected(self) -> None:
        with self._lock:
            if self.status != ConnectionStatus.CONNECTING:
                return
            self.status = ConnectionStatus.CONNECTED
        logger.info("VR tracking connected")
