"""Engine settings.

All configuration is sourced from environment variables prefixed with
``SOPWISE_`` (and optionally `.env`). The reasoning credential itself is never
read from settings; callers pass it per analysis run.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.exceptions import ConfigurationError

DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-haiku-latest",
}


class Settings(BaseSettings):
    """Typed environment-backed settings for sopwise."""

    model_config = SettingsConfigDict(
        env_prefix="SOPWISE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # External reasoning service
    provider: Literal["openai", "anthropic"] = "openai"
    model: Optional[str] = None
    base_url: Optional[str] = None
    reasoning_timeout_seconds: float = Field(default=20.0, gt=0)
    max_concurrent_requests: int = Field(default=4, ge=1)
    max_tokens: int = Field(default=1000, ge=1)

    # Analyzer tuning
    duplicate_threshold: float = Field(default=0.75, ge=0.0, le=1.0)
    include_intimate_ordering: bool = True

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value!r}")
        return normalized

    @property
    def resolved_model(self) -> str:
        return self.model or DEFAULT_MODELS[self.provider]


def load_settings(**overrides) -> Settings:
    """Build settings from the environment, wrapping validation failures."""
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(
            "Invalid sopwise settings",
            context={"errors": exc.errors(include_url=False)},
        ) from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
