"""Validate model picks against the real catalog and repair the result."""
from __future__ import annotations

import logging
from typing import Sequence

from mamafit.models.schemas import (
    GenerativeProposal,
    RecommendationCandidate,
    RecommendationResult,
)
from mamafit.services.catalog import WorkoutCatalog
from mamafit.services.fallback_scorer import FALLBACK_MESSAGE, FALLBACK_REASONING, TOP_N
from mamafit.services.normalizer import is_uuid


logger = logging.getLogger(__name__)


def valid_model_picks(
    proposal: GenerativeProposal,
    catalog: WorkoutCatalog,
) -> list[RecommendationCandidate]:
    """
    Keep model picks whose id is a well-formed UUID present in the catalog.

    Titles always come from the catalog; the model's title is ignored. The
    first occurrence of a repeated id wins.
    """
    workouts = catalog.by_id()
    accepted: dict[str, RecommendationCandidate] = {}
    rejected: list[object] = []

    for pick in proposal.picks:
        workout_id = pick.get("workout_id")
        if not is_uuid(workout_id) or workout_id not in workouts:
            rejected.append(workout_id)
            continue
        if workout_id in accepted:
            continue
        reasoning = pick.get("reasoning")
        accepted[workout_id] = RecommendationCandidate(
            workout_id=workout_id,
            title=workouts[workout_id].title,
            reasoning=reasoning.strip() if isinstance(reasoning, str) and reasoning.strip() else FALLBACK_REASONING,
        )

    if rejected:
        logger.warning("Discarded %d hallucinated workout id(s): %s", len(rejected), rejected)
    return list(accepted.values())


def reconcile(
    catalog: WorkoutCatalog,
    proposal: GenerativeProposal | None,
    fallback_ranking: Sequence[RecommendationCandidate],
    limit: int = TOP_N,
) -> RecommendationResult:
    """
    Produce the final top picks.

    ``proposal`` is ``None`` when the generative path failed outright; the
    fallback ranking is then used as-is and ``used_fallback`` is set. When the
    model returned fewer than ``limit`` usable picks the surviving ones are
    kept and the rest are backfilled from ``fallback_ranking`` (then catalog
    order), without setting ``used_fallback``.
    """
    if proposal is None:
        valid_ids = catalog.by_id()
        picks = [c for c in fallback_ranking if c.workout_id in valid_ids][:limit]
        if len(picks) < limit:
            picks.extend(_catalog_backfill(catalog, {p.workout_id for p in picks}, limit - len(picks)))
        return RecommendationResult(
            recommendations=picks,
            overall_message=FALLBACK_MESSAGE,
            used_fallback=True,
        )

    picks = valid_model_picks(proposal, catalog)[:limit]
    backfilled: list[str] = []
    if len(picks) < limit:
        chosen = {pick.workout_id for pick in picks}
        valid_ids = catalog.by_id()
        for candidate in fallback_ranking:
            if len(picks) >= limit:
                break
            if candidate.workout_id in chosen or candidate.workout_id not in valid_ids:
                continue
            picks.append(candidate)
            chosen.add(candidate.workout_id)
            backfilled.append(candidate.workout_id)
        for candidate in _catalog_backfill(catalog, chosen, limit - len(picks)):
            picks.append(candidate)
            backfilled.append(candidate.workout_id)
        logger.info("Backfilled %d recommendation(s): %s", len(backfilled), backfilled)

    return RecommendationResult(
        recommendations=picks,
        overall_message=proposal.overall_message or FALLBACK_MESSAGE,
        used_fallback=False,
        backfilled_ids=backfilled,
    )


def _catalog_backfill(
    catalog: WorkoutCatalog,
    chosen: set[str],
    count: int,
) -> list[RecommendationCandidate]:
    """First ``count`` catalog workouts not already chosen."""
    extra: list[RecommendationCandidate] = []
    for workout in catalog.workouts:
        if len(extra) >= count:
            break
        if workout.id in chosen:
            continue
        chosen.add(workout.id)
        extra.append(
            RecommendationCandidate(
                workout_id=workout.id,
                title=workout.title,
                reasoning=FALLBACK_REASONING,
            )
        )
    return extra
