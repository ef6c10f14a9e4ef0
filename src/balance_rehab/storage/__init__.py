"""Persistence for session history and progress."""

from .models import ProgressRecord, SessionRecord
from .store import SessionStore

__all__ = ["ProgressRecord", "SessionRecord", "SessionStore"]
