"""API endpoints for daily check-ins and workout recommendations."""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from mamafit.config import get_settings
from mamafit.database import get_db
from mamafit.errors import CheckInError, public_error_message
from mamafit.models.schemas import CheckInRequest
from mamafit.services.catalog import CatalogLoader
from mamafit.services.checkin_service import CheckInService
from mamafit.services.llm_client import CompletionClient, get_completion_client
from mamafit.services.persistence import CheckInRepository
from mamafit.services.recommender import GenerativeRecommender


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/check-in", tags=["check_in"])


def get_recommender(
    client: Annotated[CompletionClient | None, Depends(get_completion_client)],
) -> GenerativeRecommender:
    settings = get_settings()
    return GenerativeRecommender(
        client,
        prompt_config_path=settings.prompt_config_path,
        retry_limit=settings.retry_limit,
        default_retry_delay=settings.retry_default_delay_seconds,
        max_retry_delay=settings.retry_max_delay_seconds,
    )


def get_checkin_service(
    db: Annotated[Session | None, Depends(get_db)],
    recommender: Annotated[GenerativeRecommender, Depends(get_recommender)],
) -> CheckInService:
    settings = get_settings()
    return CheckInService(
        catalog_loader=CatalogLoader(db, settings.static_catalog_path),
        recommender=recommender,
        repository=CheckInRepository(db) if db is not None else None,
    )


def _error_response(exc: Exception) -> JSONResponse:
    status_code = exc.status_code if isinstance(exc, CheckInError) else 500
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": public_error_message(exc)},
    )


@router.post("")
async def submit_check_in(
    payload: CheckInRequest,
    service: Annotated[CheckInService, Depends(get_checkin_service)],
):
    """
    Submit a daily check-in and get the top 3 workout recommendations.

    The model ranks the catalog when it is available; otherwise (or when it
    misbehaves) a deterministic heuristic does. Only validation, catalog and
    persistence failures are reported as errors.

    Returns:
        dict: check-in reference, recommended workouts with reasoning and
        the supportive message
    """
    try:
        outcome = await service.submit(payload)
    except CheckInError as exc:
        if exc.status_code >= 500:
            logger.error("Check-in failed: %s", exc)
        else:
            logger.info("Rejected check-in: %s", exc)
        return _error_response(exc)
    except Exception as exc:
        logger.exception("Unexpected error processing check-in")
        return _error_response(exc)

    result = outcome.result
    return {
        "success": True,
        "checkIn": {
            "id": outcome.check_in_id,
            "created_at": outcome.created_at.isoformat(),
        },
        "check_in_id": outcome.check_in_id,
        "recommendations": outcome.recommended_workouts(),
        "message": result.overall_message,
        "ai_message": result.overall_message,
        "gemini_insights": outcome.reasoning_payload,
        "used_fallback_recommendations": result.used_fallback,
        "data_source": outcome.catalog.source,
    }


@router.get("/history/{user_id}")
async def get_check_in_history(
    user_id: str,
    service: Annotated[CheckInService, Depends(get_checkin_service)],
    limit: int | None = None,
):
    """
    Get a user's check-in history, newest first.

    Args:
        user_id: Email, UUID or other identifier used at check-in time
        limit: Maximum number of records (default 30)
    """
    try:
        history = service.history(user_id, limit or get_settings().history_default_limit)
    except CheckInError as exc:
        logger.error("Check-in history failed: %s", exc)
        return _error_response(exc)
    except Exception as exc:
        logger.exception("Unexpected error fetching check-in history")
        return _error_response(exc)

    return {
        "success": True,
        "history": [entry.model_dump(mode="json") for entry in history],
    }
