"""Durable session log and per-user progress record."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from sqlalchemy import func, select

from balance_rehab.core.database import session_scope
from balance_rehab.metrics.types import (
    ExerciseDifficulty,
    ExerciseSession,
    RehabilitationProgress,
)

from .models import ProgressRecord, SessionRecord

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker


class SessionStore:
    """
    Persists finished sessions (append-only) and progress snapshots.

    Usage:
        store = SessionStore()
        store.append_session("user123", session)
        history = store.list_sessions("user123")
    """

    def __init__(self, session_factory: sessionmaker[Session] | None = None):
        self._factory = session_factory

    def append_session(self, user_id: str, session: ExerciseSession) -> None:
        """Add a finished session to the log; existing ids are rejected."""
        if session.is_active:
            raise ValueError(f"Session {session.session_id} has not ended")

        with session_scope(self._factory) as db:
            if db.get(SessionRecord, session.session_id) is not None:
                raise ValueError(f"Session {session.session_id} already stored")
            db.add(
                SessionRecord(
                    id=session.session_id,
                    user_id=user_id,
                    exercise_type=session.exercise_type.value,
                    difficulty=session.difficulty.value,
                    start_time=session.start_time,
                    end_time=session.end_time,
                    duration=session.duration,
                    overall_score=session.overall_score,
                    payload=json.dumps(session.to_dict()),
                )
            )

    def list_sessions(self, user_id: str, limit: int | None = None) -> list[ExerciseSession]:
        """Sessions for a user in chronological order (most recent ``limit`` if given)."""
        with session_scope(self._factory) as db:
            stmt = (
                select(SessionRecord)
                .where(SessionRecord.user_id == user_id)
                .order_by(SessionRecord.start_time.desc())
            )
            if limit is not None:
                stmt = stmt.limit(limit)
            records = db.scalars(stmt).all()
            payloads = [r.payload for r in records]

        return [ExerciseSession.from_dict(json.loads(p)) for p in reversed(payloads)]

    def count_sessions(self, user_id: str) -> int:
        with session_scope(self._factory) as db:
            stmt = (
                select(func.count())
                .select_from(SessionRecord)
                .where(SessionRecord.user_id == user_id)
            )
            return db.scalar(stmt) or 0

    def save_progress(self, progress: RehabilitationProgress) -> None:
        """Insert or replace the user's progress record."""
        with session_scope(self._factory) as db:
            record = db.get(ProgressRecord, progress.user_id)
            if record is None:
                record = ProgressRecord(user_id=progress.user_id)
                db.add(record)
            record.start_date = progress.start_date
            record.current_level = progress.current_level.value
            record.total_sessions = progress.total_sessions
            record.average_stability_score = progress.average_stability_score
            record.average_gait_score = progress.average_gait_score
            record.fall_risk_trend = json.dumps(progress.fall_risk_trend)
            record.improvement_rate = progress.improvement_rate

    def load_progress(self, user_id: str) -> RehabilitationProgress | None:
        with session_scope(self._factory) as db:
            record = db.get(ProgressRecord, user_id)
            if record is None:
                return None
            return RehabilitationProgress(
                user_id=record.user_id,
                start_date=record.start_date,
                current_level=ExerciseDifficulty(record.current_level),
                total_sessions=record.total_sessions,
                average_stability_score=record.average_stability_score,
                average_gait_score=record.average_gait_score,
                fall_risk_trend=json.loads(record.fall_risk_trend or "[]"),
                improvement_rate=record.improvement_rate,
            )
