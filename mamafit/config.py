"""Application configuration management."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


PACKAGE_DATA_DIR = Path(__file__).resolve().parent / "data"

_PLACEHOLDER_MARKERS = (
    "YOUR_",
    "YOUR-",
    "CHANGE-ME",
    "CHANGEME",
)


class Settings(BaseSettings):
    """Centralised application settings derived from environment variables."""

    anthropic_api_key: str | None = Field(
        default=None,
        description="Anthropic API key. Leave unset to always use fallback recommendations.",
    )
    anthropic_model: str = Field(default="claude-sonnet-4-5-20250929")
    model_max_tokens: int = Field(default=2048, ge=256)
    model_temperature: float = Field(default=0.3, ge=0.0, le=1.0)

    database_url: str | None = Field(
        default="sqlite:///./data/mamafit.db",
        description="SQLAlchemy-compatible database URL (blank disables the datastore).",
    )

    retry_limit: int = Field(default=1, ge=0, le=5)
    retry_default_delay_seconds: float = Field(default=10.0, ge=0.0)
    retry_max_delay_seconds: float = Field(default=30.0, ge=0.0)

    history_default_limit: int = Field(default=30, ge=1, le=100)

    static_catalog_path: Path = Field(default=PACKAGE_DATA_DIR / "workout_catalog.yaml")
    prompt_config_path: Path = Field(default=PACKAGE_DATA_DIR / "prompts.yaml")

    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=Path("logs"))

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    @field_validator("anthropic_api_key", "database_url")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        """Treat empty or placeholder credentials as "not configured"."""

        if value is None:
            return None
        stripped = value.strip()
        if not stripped:
            return None
        upper = stripped.upper()
        if any(marker in upper for marker in _PLACEHOLDER_MARKERS):
            return None
        return stripped

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        valid = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        upper = value.upper()
        if upper not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(sorted(valid))}")
        return upper


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance so it can be reused across the app."""

    settings = Settings()
    settings.log_dir.mkdir(parents=True, exist_ok=True)
    return settings
