"""Deterministic heuristic ranking used when the model path is unavailable."""

from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from mamafit.models.schemas import RecommendationCandidate, Workout


logger = logging.getLogger(__name__)

TOP_N = 3

INTENSITY_RANKS: dict[str, int] = {
    "low": 1,
    "light": 1,
    "easy": 1,
    "medium": 2,
    "moderate": 2,
    "high": 3,
    "hard": 3,
    "vigorous": 3,
}
DEFAULT_INTENSITY_RANK = 2

SYMPTOM_WEIGHT = 3
INTENSITY_WEIGHT = 3
MOOD_BONUS = 2

CALMING_MOODS = frozenset({"anxious", "fear", "moody", "frustrated"})
ACTIVE_MOODS = frozenset({"energetic", "productive", "happy"})
CALMING_ACTIVITY = re.compile(r"yoga|stretch|breath|calm|mobility", re.IGNORECASE)
ACTIVE_ACTIVITY = re.compile(r"cardio|strength|pilates|active", re.IGNORECASE)

FALLBACK_REASONING = (
    "Selected because its intensity, symptom focus and style best match how "
    "you are feeling today. Listen to your body and stop if anything feels uncomfortable."
)
FALLBACK_MESSAGE = (
    "Here are gentle workouts picked for your energy, symptoms and mood today. "
    "Move at your own pace, stay hydrated, and check with your care provider if anything feels off."
)


def desired_intensity(energy_level: int) -> int:
    """
    Map a 1-5 energy level onto the 1-3 intensity scale.

    Example:
        >>> desired_intensity(2), desired_intensity(3), desired_intensity(5)
        (1, 2, 3)
    """
    if energy_level <= 2:
        return 1
    if energy_level == 3:
        return 2
    return 3


def intensity_rank(value: str | int | None) -> int:
    """Normalize ``low|medium|high`` or ``1..3`` to an ordinal 1..3."""
    if isinstance(value, bool) or value is None:
        return DEFAULT_INTENSITY_RANK
    if isinstance(value, int):
        return min(max(value, 1), 3)
    text = str(value).strip().lower()
    if text.isdigit():
        return min(max(int(text), 1), 3)
    return INTENSITY_RANKS.get(text, DEFAULT_INTENSITY_RANK)


def score_workout(
    workout: Workout,
    energy_level: int,
    symptoms: Iterable[str],
    moods: Iterable[str],
) -> int:
    """
    Score one workout against a check-in.

    - Intensity: ``max(0, 3 - |workout - desired|)``
    - Symptoms: 3 points per reported symptom the workout is good for
    - Mood: +2 for a calming activity when any mood is calming, +2 for an
      active one when any mood is active

    ``symptoms`` and ``moods`` must already be normalized tokens.
    """
    target = desired_intensity(energy_level)
    score = max(0, INTENSITY_WEIGHT - abs(intensity_rank(workout.intensity_level) - target))

    tags = set(workout.good_for_symptoms)
    score += SYMPTOM_WEIGHT * sum(1 for symptom in set(symptoms) if symptom in tags)

    mood_set = set(moods)
    text = f"{workout.workout_type or ''} {workout.title}"
    if mood_set & CALMING_MOODS and CALMING_ACTIVITY.search(text):
        score += MOOD_BONUS
    if mood_set & ACTIVE_MOODS and ACTIVE_ACTIVITY.search(text):
        score += MOOD_BONUS
    return score


def rank_workouts(
    catalog: Sequence[Workout],
    energy_level: int,
    symptoms: Iterable[str],
    moods: Iterable[str],
    limit: int = TOP_N,
) -> list[RecommendationCandidate]:
    """
    Rank the catalog and return the top ``limit`` candidates.

    Pure and deterministic: ties keep catalog order, and duplicate ids are
    only ranked once.
    """
    symptoms = tuple(symptoms)
    moods = tuple(moods)

    unique: dict[str, Workout] = {}
    for workout in catalog:
        unique.setdefault(workout.id, workout)

    scored = [
        (score_workout(workout, energy_level, symptoms, moods), workout)
        for workout in unique.values()
    ]
    # sorted() is stable, so equal scores stay in catalog order
    scored.sort(key=lambda item: item[0], reverse=True)

    top = scored[:limit]
    logger.debug(
        "Fallback ranking | energy=%d top=%s",
        energy_level,
        [(workout.id, score) for score, workout in top],
    )
    return [
        RecommendationCandidate(
            workout_id=workout.id,
            title=workout.title,
            reasoning=FALLBACK_REASONING,
        )
        for _, workout in top
    ]
