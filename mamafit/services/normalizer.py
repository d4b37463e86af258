"""Check-in input validation and canonicalisation."""
from __future__ import annotations

import hashlib
import logging
import re
from typing import Iterable

from mamafit.errors import ValidationError
from mamafit.models.schemas import CheckIn, CheckInRequest


logger = logging.getLogger(__name__)

MAX_SYMPTOMS = 5
MAX_MOODS = 3
MIN_ENERGY_LEVEL = 1
MAX_ENERGY_LEVEL = 5

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
_SEPARATORS = re.compile(r"[\s\-]+")


def is_uuid(value: object) -> bool:
    """Return True for a canonical 8-4-4-4-12 hex identifier."""
    return isinstance(value, str) and bool(UUID_PATTERN.match(value))


def to_stored_user_id(raw_id: str) -> str:
    """
    Map a user-supplied identifier onto the storage id format.

    UUIDs pass through unchanged. Anything else (typically an email address)
    is hashed with SHA-256 and the first 32 hex digits are laid out as a
    UUID, so raw personal identifiers never become storage keys.

    Example:
        >>> to_stored_user_id("123e4567-e89b-12d3-a456-426614174000")
        '123e4567-e89b-12d3-a456-426614174000'
    """
    if is_uuid(raw_id):
        return raw_id
    digest = hashlib.sha256(raw_id.encode("utf-8")).hexdigest()
    return f"{digest[:8]}-{digest[8:12]}-{digest[12:16]}-{digest[16:20]}-{digest[20:32]}"


def normalize_token(token: str) -> str:
    """Lower-case, trim and snake-case a symptom/mood label ("Back Pain" -> "back_pain")."""
    return _SEPARATORS.sub("_", token.strip().lower())


def normalize_tokens(tokens: Iterable[str]) -> tuple[str, ...]:
    """Normalize labels, dropping blanks and duplicates while keeping order."""
    seen: dict[str, None] = {}
    for token in tokens:
        normalized = normalize_token(token)
        if normalized:
            seen.setdefault(normalized, None)
    return tuple(seen)


def normalize_check_in(payload: CheckInRequest) -> CheckIn:
    """Validate a raw check-in request and return its canonical form.

    Raises:
        ValidationError: required field missing, energy level out of range,
            more than five symptoms or more than three moods.
    """
    if (
        not (payload.user_id or "").strip()
        or payload.energy_level is None
        or payload.symptoms is None
        or payload.moods is None
    ):
        raise ValidationError("Missing required fields: user_id, energy_level, symptoms, moods")

    if not MIN_ENERGY_LEVEL <= payload.energy_level <= MAX_ENERGY_LEVEL:
        raise ValidationError(
            f"energy_level must be between {MIN_ENERGY_LEVEL} and {MAX_ENERGY_LEVEL}"
        )

    if len(payload.symptoms) > MAX_SYMPTOMS:
        raise ValidationError(f"Maximum {MAX_SYMPTOMS} symptoms allowed")

    if len(payload.moods) > MAX_MOODS:
        raise ValidationError(f"Maximum {MAX_MOODS} moods allowed")

    preferred = (payload.preferred_workout_type or "").strip() or None

    check_in = CheckIn(
        stored_user_id=to_stored_user_id(payload.user_id.strip()),
        energy_level=payload.energy_level,
        symptoms=normalize_tokens(payload.symptoms),
        moods=normalize_tokens(payload.moods),
        preferred_workout_type=preferred,
    )
    logger.debug(
        "Normalized check-in | user=%s energy=%d symptoms=%s moods=%s",
        check_in.stored_user_id,
        check_in.energy_level,
        list(check_in.symptoms),
        list(check_in.moods),
    )
    return check_in
