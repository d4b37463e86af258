"""Workout catalog loading from the datastore or the embedded YAML catalog."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import yaml
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mamafit.errors import CatalogUnavailable
from mamafit.models.database_models import Workout as WorkoutRow
from mamafit.models.schemas import Workout
from mamafit.services.normalizer import normalize_tokens


logger = logging.getLogger(__name__)

CatalogSource = Literal["database", "static_catalog"]


@dataclass(frozen=True)
class WorkoutCatalog:
    """The full set of workouts available to one request."""

    workouts: list[Workout] = field(default_factory=list)
    source: CatalogSource = "static_catalog"

    def __len__(self) -> int:
        return len(self.workouts)

    def by_id(self) -> dict[str, Workout]:
        return {workout.id: workout for workout in self.workouts}


def _clean(workout: Workout) -> Workout:
    """Normalize symptom tags so they compare equal to user tokens."""
    return workout.model_copy(
        update={"good_for_symptoms": list(normalize_tokens(workout.good_for_symptoms))}
    )


def load_static_catalog(path: Path) -> list[Workout]:
    """Read the embedded catalog YAML file."""

    with path.open("r", encoding="utf-8") as fh:
        document = yaml.safe_load(fh) or {}
    entries = document.get("workouts", [])
    return [_clean(Workout.model_validate(entry)) for entry in entries]


class CatalogLoader:
    """Returns the full workout catalog for a request.

    Reads the ``workouts`` table when a session is available, otherwise the
    embedded static catalog. An empty table is a valid (empty) catalog.
    """

    def __init__(self, db: Session | None, static_catalog_path: Path) -> None:
        self._db = db
        self._static_catalog_path = static_catalog_path

    def load(self) -> WorkoutCatalog:
        if self._db is None:
            try:
                workouts = load_static_catalog(self._static_catalog_path)
            except (OSError, yaml.YAMLError) as err:
                logger.exception("Failed to read static catalog %s", self._static_catalog_path)
                raise CatalogUnavailable(f"Failed to load workouts: {err}") from err
            logger.info("Loaded %d workouts from static catalog", len(workouts))
            return WorkoutCatalog(workouts=workouts, source="static_catalog")

        try:
            rows = self._db.execute(
                select(WorkoutRow).order_by(WorkoutRow.created_at, WorkoutRow.id)
            ).scalars().all()
        except SQLAlchemyError as err:
            logger.exception("Failed to read workouts from datastore")
            raise CatalogUnavailable(f"Failed to load workouts: {err}") from err

        workouts = [_clean(Workout.model_validate(row)) for row in rows]
        logger.info("Loaded %d workouts from datastore", len(workouts))
        return WorkoutCatalog(workouts=workouts, source="database")
