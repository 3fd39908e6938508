"""Tests for orchestrator configuration."""

import pytest
from pydantic import ValidationError
from pytest import MonkeyPatch

from search_orchestrator.config import OrchestratorConfig


def _config(**overrides) -> OrchestratorConfig:
    values = {"gemini_api_key": "g-key", "custom_search_api_key": "s-key", "search_engine_id": "cx-1"}
    values.update(overrides)
    return OrchestratorConfig(**values)


class TestOrchestratorConfig:
    """Tests for OrchestratorConfig validation."""

    def test__defaults__match_documented_values(self) -> None:
        config = _config()
        assert config.generation_model == "gemini-1.5-flash"
        assert config.max_search_results == 10
        assert config.enable_query_generation is True
        assert config.max_generated_queries == 3
        assert config.enable_iterative_search is True
        assert config.max_search_iterations == 3
        assert config.completeness_threshold == 80
        assert config.max_followup_queries == 5

    def test__empty_api_key__raises_validation_error(self) -> None:
        with pytest.raises(ValidationError):
            _config(gemini_api_key="")

    @pytest.mark.parametrize(
        "field,value",
        [
            ("max_search_results", 0),
            ("max_generated_queries", 11),
            ("max_search_iterations", 0),
            ("completeness_threshold", 101),
            ("max_followup_queries", 0),
        ],
    )
    def test__out_of_range_value__raises_validation_error(self, field: str, value: int) -> None:
        with pytest.raises(ValidationError):
            _config(**{field: value})

    def test__config__is_frozen(self) -> None:
        config = _config()
        with pytest.raises(ValidationError):
            config.max_search_results = 5  # type: ignore[misc]

    def test__with_updates__returns_validated_copy(self) -> None:
        config = _config()
        updated = config.with_updates(max_search_iterations=2)
        assert updated.max_search_iterations == 2
        assert config.max_search_iterations == 3

    def test__with_updates__rejects_invalid_values(self) -> None:
        with pytest.raises(ValidationError):
            _config().with_updates(completeness_threshold=-1)


class TestFromEnv:
    """Tests for environment loading."""

    def test__from_env__reads_credentials_and_knobs(self, monkeypatch: MonkeyPatch) -> None:
        monkeypatch.setenv("GEMINI_API_KEY", "env-gemini")
        monkeypatch.setenv("GOOGLE_SEARCH_API_KEY", "env-search")
        monkeypatch.setenv("GOOGLE_SEARCH_ENGINE_ID", "env-cx")
        monkeypatch.setenv("SEARCH_MAX_ITERATIONS", "2")
        monkeypatch.setenv("SEARCH_ENABLE_ITERATIVE", "false")

        config = OrchestratorConfig.from_env()

        assert config.gemini_api_key == "env-gemini"
        assert config.search_engine_id == "env-cx"
        assert config.max_search_iterations == 2
        assert config.enable_iterative_search is False

    def test__from_env__overrides_win(self, monkeypatch: MonkeyPatch) -> None:
        monkeypatch.setenv("GEMINI_API_KEY", "env-gemini")
        monkeypatch.setenv("GOOGLE_SEARCH_API_KEY", "env-search")
        monkeypatch.setenv("GOOGLE_SEARCH_ENGINE_ID", "env-cx")

        config = OrchestratorConfig.from_env(max_search_results=4)

        assert config.max_search_results == 4

    def test__from_env__missing_credentials__raises_validation_error(self, monkeypatch: MonkeyPatch) -> None:
        for name in ("GEMINI_API_KEY", "GOOGLE_SEARCH_API_KEY", "GOOGLE_SEARCH_ENGINE_ID"):
            monkeypatch.delenv(name, raising=False)

        with pytest.raises(ValidationError):
            OrchestratorConfig.from_env()
