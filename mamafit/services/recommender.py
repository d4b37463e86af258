"""Generative workout ranking backed by a language model."""
from __future__ import annotations

import asyncio
import json
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Awaitable, Callable

import yaml

from mamafit.errors import ModelResponseInvalid, ModelUpstreamError
from mamafit.models.schemas import CheckIn, GenerativeProposal
from mamafit.services.catalog import WorkoutCatalog
from mamafit.services.llm_client import CompletionClient


logger = logging.getLogger(__name__)

RETRY_LIMIT = 1
DEFAULT_RETRY_DELAY_SECONDS = 10.0
MAX_RETRY_DELAY_SECONDS = 30.0
PICK_COUNT = 3

_CODE_FENCE = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)

Sleep = Callable[[float], Awaitable[Any]]


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences the model sometimes wraps JSON in."""
    return _CODE_FENCE.sub("", text).strip()


def parse_model_reply(text: str) -> GenerativeProposal:
    """
    Parse the model's reply into a proposal.

    Raises:
        ModelResponseInvalid: not JSON, or not an object with a
            ``recommendations`` list.
    """
    cleaned = strip_code_fences(text)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as err:
        raise ModelResponseInvalid("Invalid response from AI", raw_text=text) from err

    if not isinstance(payload, dict) or not isinstance(payload.get("recommendations"), list):
        raise ModelResponseInvalid("AI response is missing a recommendations list", raw_text=text)

    overall = payload.get("overall_message")
    return GenerativeProposal(
        picks=[pick for pick in payload["recommendations"] if isinstance(pick, dict)],
        overall_message=overall.strip() if isinstance(overall, str) and overall.strip() else None,
        raw=payload,
    )


@lru_cache(maxsize=8)
def load_prompt_config(path: Path) -> dict[str, str]:
    """Read prompt templates once per path; callers must not mutate the result."""
    with path.open("r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


class GenerativeRecommender:
    """Asks the model to rank the catalog for a check-in.

    Provider and parse failures are raised as :class:`ModelUpstreamError` or
    :class:`ModelResponseInvalid`; whatever it raises, the caller falls back to the
    heuristic scorer rather than surface it.
    """

    def __init__(
        self,
        client: CompletionClient | None,
        prompt_config_path: Path,
        retry_limit: int = RETRY_LIMIT,
        default_retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
        max_retry_delay: float = MAX_RETRY_DELAY_SECONDS,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.client = client
        self.retry_limit = retry_limit
        self.default_retry_delay = default_retry_delay
        self.max_retry_delay = max_retry_delay
        self._sleep = sleep

        prompt_config = load_prompt_config(prompt_config_path)
        self.system_prompt = prompt_config.get("system")
        self.prompt_template = prompt_config["check_in"]

    def build_prompt(self, check_in: CheckIn, catalog: WorkoutCatalog) -> str:
        catalog_json = json.dumps(
            [workout.model_dump(mode="json") for workout in catalog.workouts],
            indent=2,
        )
        preferred_line = (
            f"\n- Preferred workout type: {check_in.preferred_workout_type}"
            if check_in.preferred_workout_type
            else ""
        )
        return self.prompt_template.format(
            energy_level=check_in.energy_level,
            symptoms=", ".join(check_in.symptoms) or "none reported",
            moods=", ".join(check_in.moods) or "none reported",
            preferred_line=preferred_line,
            catalog_json=catalog_json,
            pick_count=PICK_COUNT,
        )

    def retry_delay(self, error: ModelUpstreamError) -> float:
        """Server-suggested delay (or the default), capped at the ceiling."""
        delay = error.retry_after_seconds
        if delay is None:
            delay = self.default_retry_delay
        return min(max(delay, 0.0), self.max_retry_delay)

    async def _complete_with_retry(self, prompt: str) -> str:
        attempt = 0
        while True:
            try:
                return await self.client.complete(prompt, system=self.system_prompt)
            except ModelUpstreamError as err:
                if not err.retryable or attempt >= self.retry_limit:
                    logger.warning(
                        "Model call failed | kind=%s attempt=%d retryable=%s: %s",
                        err.kind,
                        attempt + 1,
                        err.retryable,
                        err,
                    )
                    raise
                delay = self.retry_delay(err)
                attempt += 1
                logger.info(
                    "Model rate-limited, retry %d/%d in %.1fs",
                    attempt,
                    self.retry_limit,
                    delay,
                )
                await self._sleep(delay)

    async def recommend(self, check_in: CheckIn, catalog: WorkoutCatalog) -> GenerativeProposal:
        if self.client is None:
            raise ModelUpstreamError("Generative model is not configured")

        prompt = self.build_prompt(check_in, catalog)
        text = await self._complete_with_retry(prompt)
        try:
            proposal = parse_model_reply(text)
        except ModelResponseInvalid:
            logger.warning("Failed to parse model reply: %.500s", text)
            raise

        logger.info(
            "Model proposed %d pick(s): %s",
            len(proposal.picks),
            [pick.get("workout_id") for pick in proposal.picks],
        )
        return proposal
