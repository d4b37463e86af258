"""Pydantic models describing API payloads and recommendation data."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CheckInRequest(BaseModel):
    """Raw body of ``POST /check-in``.

    Every field is optional here so that missing values are reported by the
    normalizer with a single, friendly message instead of a schema error.
    """

    user_id: str | None = None
    energy_level: int | None = None
    symptoms: list[str] | None = None
    moods: list[str] | None = None
    preferred_workout_type: str | None = None


class CheckIn(BaseModel):
    """A validated, normalized check-in. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    stored_user_id: str
    energy_level: int = Field(ge=1, le=5)
    symptoms: tuple[str, ...] = ()
    moods: tuple[str, ...] = ()
    preferred_workout_type: str | None = None


class Workout(BaseModel):
    """Catalog entry as seen by the recommendation engine."""

    id: str
    title: str
    description: str | None = None
    duration_minutes: int | None = None
    intensity_level: str | int = "medium"
    workout_type: str | None = None
    youtube_url: str | None = None
    youtube_id: str | None = None
    good_for_symptoms: list[str] = []

    class Config:
        from_attributes = True


class RecommendationCandidate(BaseModel):
    """A single ranked pick, either model-proposed or heuristic."""

    workout_id: str
    title: str
    reasoning: str


class GenerativeProposal(BaseModel):
    """Parsed (but not yet trusted) reply from the language model."""

    picks: list[dict[str, Any]] = []
    overall_message: str | None = None
    raw: dict[str, Any] = {}


class RecommendationResult(BaseModel):
    """Final, reconciled top picks for one check-in."""

    recommendations: list[RecommendationCandidate]
    overall_message: str
    used_fallback: bool = False
    backfilled_ids: list[str] = []


class CheckInHistoryEntry(BaseModel):
    """Schema for one row of ``GET /check-in/history/{user_id}``."""

    id: str
    user_id: str
    energy_level: int
    symptoms: list[str] = []
    moods: list[str] = []
    preferred_workout_type: str | None = None
    recommended_workout_ids: list[str] = []
    gemini_reasoning: Any = None
    used_fallback: bool = False
    created_at: datetime
