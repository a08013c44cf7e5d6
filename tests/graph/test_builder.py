"""Tests for PipelineBuilder."""

from __future__ import annotations

import pytest

from idea_forge.domain.enums import PipelinePhase, StageName
from idea_forge.domain.exceptions import ConfigurationError
from idea_forge.graph import PipelineBuilder, build_pipeline_graph
from idea_forge.infrastructure.config import ProducerConfig
from idea_forge.infrastructure.llm import Producer
from idea_forge.infrastructure.registry import ExecutionModeRegistry
from idea_forge.modes import SolopreneurMode
from idea_forge.services.recorder import ResultRecorder
from idea_forge.testing import ScriptedChatModel


class TestPipelineBuilder:

    def test_default_producer_for_every_stage(self, pipeline_config) -> None:
        producer = Producer(ScriptedChatModel(responses=["x"]))
        orchestrator = PipelineBuilder().with_config(pipeline_config).with_producer(producer).build()
        assert set(orchestrator.stages) == {
            PipelinePhase.IDEATION,
            PipelinePhase.COMPETITOR_ANALYSIS,
            PipelinePhase.CRITIQUE,
            PipelinePhase.DOCUMENTATION,
        }
        assert all(stage.producer is producer for stage in orchestrator.stages.values())
        assert orchestrator.modes.supported_modes == ["classic-startup", "solopreneur"]

    def test_stage_override(self, pipeline_config) -> None:
        default = Producer(ScriptedChatModel(responses=["x"]), name="default")
        critic = Producer(ScriptedChatModel(responses=["y"]), name="critic")
        orchestrator = (
            PipelineBuilder()
            .with_config(pipeline_config)
            .with_producer(default)
            .with_stage_producer(StageName.CRITIC, critic)
            .build()
        )
        assert orchestrator.stages[PipelinePhase.CRITIQUE].producer is critic
        assert orchestrator.stages[PipelinePhase.IDEATION].producer is default

    def test_custom_modes(self, pipeline_config) -> None:
        registry = ExecutionModeRegistry(default_mode="solopreneur")
        registry.register(SolopreneurMode())
        orchestrator = (
            PipelineBuilder()
            .with_config(pipeline_config)
            .with_model(ScriptedChatModel(responses=["x"]))
            .with_modes(registry)
            .build()
        )
        assert orchestrator.modes is registry
        assert "solopreneur" in repr(orchestrator)

    def test_missing_credentials(self, pipeline_config) -> None:
        builder = PipelineBuilder().with_config(pipeline_config).with_producer_config(ProducerConfig())
        with pytest.raises(ConfigurationError):
            builder.build()


class TestBuildPipelineGraph:

    def test_requires_every_phase(self, pipeline_config) -> None:
        orchestrator = (
            PipelineBuilder()
            .with_config(pipeline_config)
            .with_model(ScriptedChatModel(responses=["x"]))
            .build()
        )
        stages = dict(orchestrator.stages)
        del stages[PipelinePhase.CRITIQUE]
        with pytest.raises(ValueError, match="critique"):
            build_pipeline_graph(stages, orchestrator._interceptor(False), ResultRecorder())
