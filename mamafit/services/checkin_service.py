"""Check-in submission flow: normalize, rank, reconcile, persist."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from mamafit.errors import ModelResponseInvalid, ModelUpstreamError
from mamafit.models.schemas import (
    CheckIn,
    CheckInHistoryEntry,
    CheckInRequest,
    GenerativeProposal,
    RecommendationResult,
)
from mamafit.services.catalog import CatalogLoader, WorkoutCatalog
from mamafit.services.fallback_scorer import rank_workouts
from mamafit.services.normalizer import normalize_check_in, to_stored_user_id
from mamafit.services.persistence import DEFAULT_HISTORY_LIMIT, CheckInRepository
from mamafit.services.reconciler import reconcile
from mamafit.services.recommender import GenerativeRecommender


logger = logging.getLogger(__name__)


@dataclass
class CheckInOutcome:
    """Everything the router needs to answer a submission."""

    check_in: CheckIn
    check_in_id: str
    created_at: datetime
    persisted: bool
    catalog: WorkoutCatalog
    result: RecommendationResult
    reasoning_payload: dict[str, Any] = field(default_factory=dict)

    def recommended_workouts(self) -> list[dict[str, Any]]:
        """Full workout records for the final picks, each with its reasoning."""
        workouts = self.catalog.by_id()
        return [
            {
                **workouts[candidate.workout_id].model_dump(mode="json"),
                "reasoning": candidate.reasoning,
            }
            for candidate in self.result.recommendations
        ]


class CheckInService:
    """Stateless per-request orchestrator for check-ins."""

    def __init__(
        self,
        catalog_loader: CatalogLoader,
        recommender: GenerativeRecommender,
        repository: CheckInRepository | None,
    ) -> None:
        self.catalog_loader = catalog_loader
        self.recommender = recommender
        self.repository = repository

    async def submit(self, payload: CheckInRequest) -> CheckInOutcome:
        """
        Handle one check-in end to end.

        Raises:
            ValidationError: bad input, before any upstream call.
            CatalogUnavailable: the workout catalog could not be read.
            PersistenceError: the check-in could not be stored.
        """
        check_in = normalize_check_in(payload)
        logger.info(
            "Check-in received | user=%s energy=%d symptoms=%d moods=%d",
            check_in.stored_user_id,
            check_in.energy_level,
            len(check_in.symptoms),
            len(check_in.moods),
        )

        catalog = self.catalog_loader.load()
        fallback_ranking = rank_workouts(
            catalog.workouts,
            check_in.energy_level,
            check_in.symptoms,
            check_in.moods,
        )

        proposal: GenerativeProposal | None
        try:
            proposal = await self.recommender.recommend(check_in, catalog)
        except (ModelUpstreamError, ModelResponseInvalid) as err:
            logger.warning("Generative recommendations unavailable, using fallback: %s", err)
            proposal = None
            fallback_reason = str(err)
        except Exception as err:
            logger.exception("Generative recommender failed unexpectedly, using fallback")
            proposal = None
            fallback_reason = str(err) or type(err).__name__

        result = reconcile(catalog, proposal, fallback_ranking)
        workout_ids = [candidate.workout_id for candidate in result.recommendations]

        if proposal is not None:
            reasoning_payload = proposal.raw
        else:
            reasoning_payload = {
                "recommendations": [candidate.model_dump() for candidate in result.recommendations],
                "overall_message": result.overall_message,
                "source": "fallback",
                "fallback_reason": fallback_reason,
            }

        if self.repository is None:
            logger.warning("No datastore configured - check-in for %s not stored", check_in.stored_user_id)
            check_in_id = str(uuid.uuid4())
            created_at = datetime.now(timezone.utc)
            persisted = False
        else:
            record = self.repository.save(
                check_in,
                workout_ids,
                reasoning_payload,
                used_fallback=result.used_fallback,
            )
            check_in_id = record.id
            created_at = record.created_at
            persisted = True

        logger.info(
            "Check-in %s complete | source=%s fallback=%s picks=%s",
            check_in_id,
            catalog.source,
            result.used_fallback,
            workout_ids,
        )
        return CheckInOutcome(
            check_in=check_in,
            check_in_id=check_in_id,
            created_at=created_at,
            persisted=persisted,
            catalog=catalog,
            result=result,
            reasoning_payload=reasoning_payload,
        )

    def history(self, raw_user_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[CheckInHistoryEntry]:
        """Stored check-ins for a user, newest first. Empty without a datastore."""
        if self.repository is None:
            return []
        return self.repository.history(to_stored_user_id(raw_user_id or "guest"), limit)
