"""Central logging configuration for the check-in service."""
from __future__ import annotations

from logging.config import dictConfig
from pathlib import Path

from pydantic import ValidationError

from mamafit.config import get_settings

LOG_FILENAME = "mamafit.log"

# Chatty third-party loggers; the SDK's HTTP client logs every request at INFO.
QUIET_LOGGERS = ("httpx", "httpcore", "anthropic", "uvicorn.access")

_configured = False


def build_logging_config(log_dir: Path, level: str, debug: bool = False) -> dict:
    """
    dictConfig for the service.

    ``mamafit.*`` and ``scripts.*`` follow ``level``. SQL statements are only
    logged when ``debug`` is set. Migrations always report progress.
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            },
            "console": {
                "format": "%(levelname)-7s %(name)s: %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "level": level,
            },
            "file": {
                "class": "logging.FileHandler",
                "filename": str(log_dir / LOG_FILENAME),
                "encoding": "utf-8",
                "formatter": "standard",
                "level": "DEBUG" if debug else level,
            },
        },
        "loggers": {
            "mamafit": {"level": "DEBUG" if debug else level},
            "scripts": {"level": level},
            "alembic": {"level": "INFO"},
            "sqlalchemy.engine": {"level": "INFO" if debug else "WARNING"},
            **{name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        },
        "root": {
            "level": "WARNING",
            "handlers": ["console", "file"],
        },
    }


def configure_logging() -> None:
    """Configure application logging once per process."""

    global _configured
    if _configured:
        return

    try:
        settings = get_settings()
        log_dir, level, debug = settings.log_dir, settings.log_level, settings.debug
    except ValidationError:
        # A bad LOG_LEVEL or similar must not stop the app from logging why.
        log_dir, level, debug = Path("logs"), "INFO", False
    log_dir.mkdir(parents=True, exist_ok=True)

    dictConfig(build_logging_config(log_dir, level, debug))
    _configured = True
