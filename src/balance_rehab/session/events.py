"""Publish-on-mutation event bus for session state changes."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

SESSION_STARTED = "session_started"
SAMPLE_PROCESSED = "sample_processed"
SESSION_ENDED = "session_ended"
PREDICTION_READY = "prediction_ready"
PROGRESS_UPDATED = "progress_updated"
ADVISORY = "advisory"

Listener = Callable[[str, Any], None]


class EventBus:
    """
    Minimal synchronous pub/sub.

    Listeners run on the publishing thread (the sample worker for
    ``sample_processed``). A listener that raises is logged and skipped
    so one bad subscriber cannot stall sample processing.

    Usage:
        bus = EventBus()
        unsubscribe = bus.subscribe(SESSION_ENDED, lambda event, session: ...)
    """

    def __init__(self):
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event: str, listener: Listener) -> Callable[[], None]:
        """Register a listener; ``"*"`` receives every event."""
        with self._lock:
            self._listeners[event].append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners[event]:
                    self._listeners[event].remove(listener)

        return unsubscribe

    def publish(self, event: str, payload: Any = None) -> None:
        with self._lock:
            listeners = list(self._listeners[event]) + list(self._listeners["*"])

        for listener in listeners:
            try:
                listener(event, payload)
            except Exception:
                logger.exception("Listener %r failed on %s", listener, event)
