"""Core infrastructure modules."""

from .config import Settings, get_settings, reload_settings
from .database import Base, init_db, reset_engine, session_scope
from .log import setup_logging

__all__ = [
    "Base",
    "Settings",
    "get_settings",
    "init_db",
    "reload_settings",
    "reset_engine",
    "session_scope",
    "setup_logging",
]
