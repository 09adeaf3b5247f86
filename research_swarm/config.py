"""Engine settings loaded from ``RESEARCH_*`` environment variables."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Tunables for planning, searching, and session retention."""

    model_config = SettingsConfigDict(env_prefix="RESEARCH_", env_file=".env", extra="ignore")

    # Planning
    max_workers_default: int = Field(default=5, ge=1, le=10)
    min_findings_threshold: int = Field(default=15, ge=0)

    # Search executor
    max_retries: int = Field(default=2, ge=0)
    backoff_base_seconds: float = Field(default=1.0, ge=0.0)
    search_timeout_ms: int = Field(default=30_000, gt=0)
    results_per_query: int = Field(default=4, ge=1)

    # Worker
    finding_max_chars: int = Field(default=350, ge=1)

    # Session registry
    completed_history_cap: int = Field(default=50, ge=1)
    recent_completed_limit: int = Field(default=5, ge=1)

    # Collaborators
    tavily_api_key: str | None = None
    delegation_model: str = "anthropic:claude-sonnet-4-5"


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    """Cached settings for production; tests construct ``EngineSettings`` directly."""
    return EngineSettings()
