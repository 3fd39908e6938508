"""Orchestrator configuration.

Credentials arrive already resolved (API keys, engine id); this module only
validates them alongside the tuning knobs of the iterative search loop.
"""

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_GENERATION_MODEL = "gemini-1.5-flash"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class OrchestratorConfig(BaseModel):
    """Settings for one ``SearchOrchestrator`` instance."""

    model_config = ConfigDict(frozen=True)

    gemini_api_key: str = Field(min_length=1, description="Generative Language API key")
    custom_search_api_key: str = Field(min_length=1, description="Custom Search JSON API key")
    search_engine_id: str = Field(min_length=1, description="Programmable Search Engine id (cx)")
    generation_model: str = Field(default=DEFAULT_GENERATION_MODEL, min_length=1)

    max_search_results: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Cap on the aggregated result set and the total per-batch result budget",
    )
    enable_query_generation: bool = True
    max_generated_queries: int = Field(default=3, ge=1, le=10)
    enable_iterative_search: bool = True
    max_search_iterations: int = Field(default=3, ge=1, le=10)
    completeness_threshold: int = Field(default=80, ge=0, le=100)
    max_followup_queries: int = Field(default=5, ge=1, le=10)

    @classmethod
    def from_env(cls, **overrides: Any) -> "OrchestratorConfig":
        """Build a config from environment variables; keyword overrides win."""
        values: dict[str, Any] = {
            "gemini_api_key": os.getenv("GEMINI_API_KEY", ""),
            "custom_search_api_key": os.getenv("GOOGLE_SEARCH_API_KEY", ""),
            "search_engine_id": os.getenv("GOOGLE_SEARCH_ENGINE_ID", ""),
            "generation_model": os.getenv("GEMINI_MODEL", DEFAULT_GENERATION_MODEL),
            "max_search_results": int(os.getenv("SEARCH_MAX_RESULTS", "10")),
            "enable_query_generation": _env_bool("SEARCH_ENABLE_QUERY_GENERATION", True),
            "max_generated_queries": int(os.getenv("SEARCH_MAX_GENERATED_QUERIES", "3")),
            "enable_iterative_search": _env_bool("SEARCH_ENABLE_ITERATIVE", True),
            "max_search_iterations": int(os.getenv("SEARCH_MAX_ITERATIONS", "3")),
            "completeness_threshold": int(os.getenv("SEARCH_COMPLETENESS_THRESHOLD", "80")),
            "max_followup_queries": int(os.getenv("SEARCH_MAX_FOLLOWUP_QUERIES", "5")),
        }
        values.update(overrides)
        return cls(**values)

    def with_updates(self, **changes: Any) -> "OrchestratorConfig":
        """Return a re-validated copy with ``changes`` applied."""
        return type(self).model_validate({**self.model_dump(), **changes})
