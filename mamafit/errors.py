"""Exception taxonomy for the check-in recommendation flow.

Routers translate these into ``{"success": false, "error": ...}`` responses:

- ``ValidationError`` -> 400
- ``CatalogUnavailable`` / ``PersistenceError`` -> 500
- ``ModelResponseInvalid`` / ``ModelUpstreamError`` -> recovered by the
  fallback scorer and never surfaced to the caller
"""
from __future__ import annotations

from typing import Literal


UpstreamErrorKind = Literal["rate_limited", "daily_quota", "other"]

RATE_LIMIT_NOTICE = (
    "The recommendation service is receiving too many requests right now. "
    "Please try again in a minute."
)


class CheckInError(Exception):
    """Base class for all check-in domain errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(CheckInError):
    """Missing, malformed or over-limit check-in input."""

    status_code = 400


class CatalogUnavailable(CheckInError):
    """The workout catalog could not be read from the datastore."""


class PersistenceError(CheckInError):
    """A check-in record could not be written or read."""


class ModelResponseInvalid(CheckInError):
    """The model replied, but not with the JSON document that was requested."""

    def __init__(self, message: str, raw_text: str | None = None) -> None:
        super().__init__(message)
        self.raw_text = raw_text


class ModelUpstreamError(CheckInError):
    """The language-model call failed.

    Classified once at the client boundary so callers can dispatch on
    ``kind`` instead of re-reading provider error messages.
    """

    kind: UpstreamErrorKind = "other"

    def __init__(
        self,
        message: str,
        *,
        retry_after_seconds: float | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds
        self.upstream_status = status_code

    @property
    def retryable(self) -> bool:
        return self.kind == "rate_limited"


class RateLimited(ModelUpstreamError):
    """Transient upstream throttling (HTTP 429, "too many requests")."""

    kind: UpstreamErrorKind = "rate_limited"


class DailyQuotaExceeded(ModelUpstreamError):
    """The day's usage allowance is exhausted; retrying will not help."""

    kind: UpstreamErrorKind = "daily_quota"


def is_rate_limit_failure(exc: BaseException | None) -> bool:
    """Return True when ``exc`` or anything in its cause chain was throttling."""

    seen: set[int] = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        if isinstance(exc, (RateLimited, DailyQuotaExceeded)):
            return True
        if getattr(exc, "status_code", None) == 429:
            return True
        exc = exc.__cause__ or exc.__context__
    return False


def public_error_message(exc: BaseException) -> str:
    """Message safe to return to the client in a 500 envelope."""

    if is_rate_limit_failure(exc):
        return RATE_LIMIT_NOTICE
    if isinstance(exc, CheckInError):
        return exc.message
    return str(exc) or "Failed to process check-in"
