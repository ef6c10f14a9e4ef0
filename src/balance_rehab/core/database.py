"""SQLAlchemy 2.0 engine, session factory and transactional scope."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .config import get_settings

if TYPE_CHECKING:
    from sqlalchemy import Engine


class Base(DeclarativeBase):
    """Declarative base for the session log and progress tables."""

    pass


_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _connect_args(url: str) -> dict[str, Any]:
    # Sessions are finalized on whichever thread calls end_session
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine for ``url`` with the connect options the store needs."""
    return create_engine(url, echo=echo, connect_args=_connect_args(url))


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Session factory whose objects stay readable after commit."""
    return sessionmaker(bind=engine, expire_on_commit=False)


def get_engine() -> Engine:
    """Process-wide engine for the configured database URL."""
    global _engine
    if _engine is None:
        settings = get_settings()
        settings.ensure_directories()
        _engine = build_engine(settings.database.url, echo=settings.database.echo)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(get_engine())
    return _session_factory


def init_db(engine: Engine | None = None) -> None:
    """Create the ``sessions`` and ``progress`` tables if missing."""
    # Registers SessionRecord and ProgressRecord on Base.metadata
    from balance_rehab.storage import models as _  # noqa: F401

    Base.metadata.create_all(engine or get_engine())


@contextmanager
def session_scope(
    factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """Transactional scope: commit on success, roll back on error."""
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def reset_engine() -> None:
    """Drop the process-wide engine so the next call re-reads settings."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
