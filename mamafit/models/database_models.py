"""SQLAlchemy ORM models for the workout catalog and check-in history."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Index, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mamafit.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Workout(Base):
    """A workout video in the catalog. Read-only to the recommendation flow."""

    __tablename__ = "workouts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    intensity_level: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")  # low|medium|high or 1-3
    workout_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Video metadata
    youtube_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    youtube_id: Mapped[str | None] = mapped_column(String(50), nullable=True)

    good_for_symptoms: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class CheckInRecord(Base):
    """One persisted check-in submission. Append-only."""

    __tablename__ = "user_check_ins"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)  # stored id, never a raw email

    energy_level: Mapped[int] = mapped_column(Integer, nullable=False)
    symptoms: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    moods: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    preferred_workout_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    recommended_workout_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    gemini_reasoning: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON blob, kept verbatim for audit
    used_fallback: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_user_check_ins_user_created", "user_id", "created_at"),
    )
