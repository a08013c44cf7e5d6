"""Tests for configuration dataclasses."""

from __future__ import annotations

import json

import pytest

from idea_forge.domain.enums import StageName
from idea_forge.domain.exceptions import ConfigurationError
from idea_forge.infrastructure.config import (
    PipelineConfig,
    ProducerConfig,
    load_config_from_json,
)


class TestProducerConfig:

    def test_from_env(self) -> None:
        cfg = ProducerConfig.from_env({
            "ANTHROPIC_API_KEY": "sk-ant",
            "LLM_MODEL": "claude-sonnet-4-20250514",
            "CRITIC_MODEL": "gpt-4o-mini",
            "USE_PROVIDER_FALLBACKS": "false",
        })
        assert cfg.credentialed_providers == ("anthropic",)
        assert cfg.model_for(StageName.CRITIC) == "gpt-4o-mini"
        assert cfg.model_for("IdeationAgent") == "claude-sonnet-4-20250514"
        assert cfg.use_fallbacks is False

    def test_require_credentials(self) -> None:
        with pytest.raises(ConfigurationError) as excinfo:
            ProducerConfig().require_credentials()
        assert "OPENAI_API_KEY" in str(excinfo.value)

    def test_to_dict_masks_keys(self) -> None:
        data = ProducerConfig(openai_api_key="secret").to_dict()
        assert data["openai_api_key"] == "***"
        assert data["google_api_key"] == ""

    @pytest.mark.parametrize("changes", [
        {"llm_model": ""},
        {"temperature": 3.0},
        {"max_retries": -1},
        {"timeout": 0},
    ])
    def test_validate(self, changes) -> None:
        with pytest.raises(ValueError):
            ProducerConfig.from_dict(changes)


class TestPipelineConfig:

    def test_defaults(self) -> None:
        cfg = PipelineConfig()
        cfg.validate()
        assert cfg.batch_size == 10
        assert cfg.use_refinement is False
        assert cfg.execution_mode == "classic-startup"

    def test_from_env(self) -> None:
        cfg = PipelineConfig.from_env({
            "USE_TEST_CACHE": "true",
            "EXECUTION_MODE": "solopreneur",
            "USE_REFINEMENT": "1",
        })
        assert cfg.use_cache is True
        assert cfg.use_refinement is True
        assert cfg.execution_mode == "solopreneur"

    def test_with_overrides_ignores_none(self) -> None:
        cfg = PipelineConfig().with_overrides(batch_size=3, execution_mode=None)
        assert cfg.batch_size == 3
        assert cfg.execution_mode == "classic-startup"

    @pytest.mark.parametrize("changes", [
        {"batch_size": 0},
        {"refinement_batch_size": 0},
        {"replay_min_delay": 2.0, "replay_max_delay": 1.0},
        {"event_buffer_size": 0},
        {"docs_dir": ""},
    ])
    def test_validate(self, changes) -> None:
        with pytest.raises(ValueError):
            PipelineConfig.from_dict(changes)

    def test_from_dict_drops_unknown_keys(self) -> None:
        assert PipelineConfig.from_dict({"batch_size": 4, "colour": "blue"}).batch_size == 4


class TestLoadConfigFromJson:

    def test_sections(self) -> None:
        result = load_config_from_json(json.dumps({
            "pipeline": {"batch_size": 5},
            "producer": {"llm_model": "gpt-4o-mini"},
            "extra": {"keep": True},
        }))
        assert result["pipeline"].batch_size == 5
        assert result["producer"].llm_model == "gpt-4o-mini"
        assert result["extra"] == {"keep": True}

    def test_top_level_must_be_object(self) -> None:
        with pytest.raises(ValueError):
            load_config_from_json("[1, 2]")
