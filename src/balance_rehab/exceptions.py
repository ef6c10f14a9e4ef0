"""Exception types raised by the rehabilitation pipeline."""


class RehabError(Exception):
    """Base exception for all balance-rehab errors."""

    pass


class SensorUnavailableError(RehabError):
    """Motion or VR tracking source cannot start."""

    pass


class HealthAccessDeniedError(RehabError):
    """Health data store rejected a read or write (not authorized)."""

    pass


class SessionAlreadyActiveError(RehabError):
    """A session was started while another one is still active."""

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} is already active")
        self.session_id = session_id


class StaleResultError(RehabError):
    """An asynchronous result resolved after its owning session ended."""

    def __init__(self, kind: str, session_id: str | None):
        super().__init__(f"Discarding stale {kind} for session {session_id}")
        self.kind = kind
        self.session_id = session_id
