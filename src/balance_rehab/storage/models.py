"""SQLAlchemy models for the session log and progress records."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from balance_rehab.core.database import Base


class SessionRecord(Base):
    """One finished exercise session (append-only)."""

    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    exercise_type: Mapped[str] = mapped_column(String(50), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(20), nullable=False)
    start_time: Mapped[float] = mapped_column(Float, nullable=False, index=True)
    end_time: Mapped[float | None] = mapped_column(Float)
    duration: Mapped[float] = mapped_column(Float, default=0.0)
    overall_score: Mapped[float] = mapped_column(Float, default=0.0)
    payload: Mapped[str] = mapped_column(Text, nullable=False)  # ExerciseSession.to_dict() as JSON
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    def __repr__(self) -> str:
        return f"<SessionRecord(id={self.id}, type='{self.exercise_type}', score={self.overall_score:.1f})>"


class ProgressRecord(Base):
    """Latest progress snapshot, one row per user."""

    __tablename__ = "progress"

    user_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    start_date: Mapped[float] = mapped_column(Float, nullable=False)
    current_level: Mapped[str] = mapped_column(String(20), nullable=False)
    total_sessions: Mapped[int] = mapped_column(Integer, default=0)
    average_stability_score: Mapped[float] = mapped_column(Float, default=0.0)
    average_gait_score: Mapped[float] = mapped_column(Float, default=0.0)
    fall_risk_trend: Mapped[str] = mapped_column(Text, default="[]")  # JSON array as string
    improvement_rate: Mapped[float] = mapped_column(Float, default=0.0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<ProgressRecord(user_id={self.user_id}, sessions={self.total_sessions})>"
