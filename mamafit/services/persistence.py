"""Check-in record storage."""
from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mamafit.errors import PersistenceError
from mamafit.models.database_models import CheckInRecord
from mamafit.models.schemas import CheckIn, CheckInHistoryEntry


logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 30
MAX_HISTORY_LIMIT = 100


def _load_reasoning(record: CheckInRecord) -> Any:
    if not record.gemini_reasoning:
        return None
    try:
        return json.loads(record.gemini_reasoning)
    except json.JSONDecodeError:
        logger.warning("Check-in %s has an unreadable reasoning blob", record.id)
        return None


class CheckInRepository:
    """Append-only access to ``user_check_ins``."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def save(
        self,
        check_in: CheckIn,
        workout_ids: list[str],
        reasoning_payload: dict[str, Any],
        used_fallback: bool,
    ) -> CheckInRecord:
        """
        Insert one check-in and return the stored row.

        The reasoning payload is stored verbatim as a JSON string so the
        model's original output survives even when parts were discarded.

        Raises:
            PersistenceError: the insert or commit failed.
        """
        record = CheckInRecord(
            user_id=check_in.stored_user_id,
            energy_level=check_in.energy_level,
            symptoms=list(check_in.symptoms),
            moods=list(check_in.moods),
            preferred_workout_type=check_in.preferred_workout_type,
            recommended_workout_ids=list(workout_ids),
            gemini_reasoning=json.dumps(reasoning_payload, default=str),
            used_fallback=used_fallback,
        )
        try:
            self._db.add(record)
            self._db.commit()
            self._db.refresh(record)
        except SQLAlchemyError as err:
            self._db.rollback()
            logger.exception("Check-in insert failed | user=%s", check_in.stored_user_id)
            raise PersistenceError(f"Failed to save check-in: {err}") from err

        logger.info("Saved check-in %s for user %s", record.id, record.user_id)
        return record

    def history(self, stored_user_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[CheckInHistoryEntry]:
        """Newest-first check-ins for a user with the reasoning blob decoded."""

        limit = min(max(limit, 1), MAX_HISTORY_LIMIT)
        try:
            records = (
                self._db.execute(
                    select(CheckInRecord)
                    .where(CheckInRecord.user_id == stored_user_id)
                    .order_by(CheckInRecord.created_at.desc(), CheckInRecord.id.desc())
                    .limit(limit)
                )
                .scalars()
                .all()
            )
        except SQLAlchemyError as err:
            logger.exception("Check-in history query failed | user=%s", stored_user_id)
            raise PersistenceError(f"Failed to load check-in history: {err}") from err

        return [
            CheckInHistoryEntry(
                id=record.id,
                user_id=record.user_id,
                energy_level=record.energy_level,
                symptoms=record.symptoms or [],
                moods=record.moods or [],
                preferred_workout_type=record.preferred_workout_type,
                recommended_workout_ids=record.recommended_workout_ids or [],
                gemini_reasoning=_load_reasoning(record),
                used_fallback=record.used_fallback,
                created_at=record.created_at,
            )
            for record in records
        ]
