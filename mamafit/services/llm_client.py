"""Language-model client boundary.

All provider errors are translated into :class:`ModelUpstreamError`
subclasses here, once, so the recommender never inspects raw messages.
"""
from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Any, Protocol

import anthropic
from anthropic import AsyncAnthropic

from mamafit.config import get_settings
from mamafit.errors import (
    DailyQuotaExceeded,
    ModelUpstreamError,
    RateLimited,
)


logger = logging.getLogger(__name__)

_RATE_LIMIT_PATTERN = re.compile(
    r"too many requests|quota exceeded|rate[ _-]?limit|resource[ _-]?exhausted",
    re.IGNORECASE,
)
_DAILY_QUOTA_PATTERN = re.compile(
    r"per[ _-]?day|daily (?:quota|limit)|requests? per day|quota.*\bday\b",
    re.IGNORECASE,
)
_RETRY_DELAY_PATTERNS = (
    re.compile(r'retryDelay"?\s*:\s*"?(\d+(?:\.\d+)?)s', re.IGNORECASE),
    re.compile(r"retry in\s+(\d+(?:\.\d+)?)\s*s", re.IGNORECASE),
    re.compile(r"retry after\s+(\d+(?:\.\d+)?)\s*s", re.IGNORECASE),
)


class CompletionClient(Protocol):
    """Anything that can turn a prompt into completion text."""

    async def complete(self, prompt: str, system: str | None = None) -> str:
        ...


def parse_retry_delay(message: str) -> float | None:
    """
    Extract a server-suggested retry delay (seconds) from an error message.

    Example:
        >>> parse_retry_delay('{"retryDelay":"20s"}')
        20.0
        >>> parse_retry_delay("Quota exceeded, please retry in 20.8s.")
        20.8
    """
    for pattern in _RETRY_DELAY_PATTERNS:
        match = pattern.search(message)
        if match:
            return float(match.group(1))
    return None


def _header_retry_after(headers: Any) -> float | None:
    if not headers:
        return None
    value = headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def classify_upstream_error(
    message: str,
    *,
    status_code: int | None = None,
    retry_after_seconds: float | None = None,
) -> ModelUpstreamError:
    """
    Build a typed upstream error from provider status and message.

    Daily-quota errors win over rate-limit errors: a message such as
    "Quota exceeded for GenerateRequestsPerDay" is never retried.
    """
    rate_limited = status_code == 429 or bool(_RATE_LIMIT_PATTERN.search(message))
    if retry_after_seconds is None:
        retry_after_seconds = parse_retry_delay(message)

    if rate_limited and _DAILY_QUOTA_PATTERN.search(message):
        return DailyQuotaExceeded(message, status_code=status_code)
    if rate_limited:
        return RateLimited(
            message,
            retry_after_seconds=retry_after_seconds,
            status_code=status_code,
        )
    return ModelUpstreamError(message, status_code=status_code)


class AnthropicCompletionClient:
    """Thin async wrapper around the Anthropic messages API."""

    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = 2048,
        temperature: float = 0.3,
        client: AsyncAnthropic | None = None,
    ) -> None:
        # The SDK has its own retry loop; the recommender owns retry policy.
        self._client = client or AsyncAnthropic(api_key=api_key, max_retries=0)
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def complete(self, prompt: str, system: str | None = None) -> str:
        request_payload: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            request_payload["system"] = system

        try:
            response = await self._client.messages.create(**request_payload)
        except anthropic.APIStatusError as err:
            raise classify_upstream_error(
                str(err),
                status_code=err.status_code,
                retry_after_seconds=_header_retry_after(err.response.headers),
            ) from err
        except anthropic.APIError as err:
            # Connection failures and timeouts carry no status code.
            raise classify_upstream_error(str(err)) from err

        text = "".join(
            getattr(block, "text", "") for block in (response.content or [])
        )
        logger.debug("Model reply received | model=%s chars=%d", self.model, len(text))
        return text


@lru_cache()
def _build_default_client() -> AnthropicCompletionClient | None:
    settings = get_settings()
    if not settings.anthropic_api_key:
        logger.warning("ANTHROPIC_API_KEY not configured - recommendations will use the fallback scorer")
        return None
    return AnthropicCompletionClient(
        api_key=settings.anthropic_api_key,
        model=settings.anthropic_model,
        max_tokens=settings.model_max_tokens,
        temperature=settings.model_temperature,
    )


def get_completion_client() -> CompletionClient | None:
    """FastAPI dependency returning the process-wide completion client (or None)."""
    return _build_default_client()
