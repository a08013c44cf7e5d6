"""End-to-end tests for the pipeline orchestrator."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from idea_forge.domain.entities import DEFAULT_REASONING
from idea_forge.domain.enums import EventType, IdeaStage, PipelinePhase
from idea_forge.domain.exceptions import PipelineError
from idea_forge.graph import PipelineBuilder
from idea_forge.infrastructure.event_bus import EventRingBuffer
from idea_forge.infrastructure.connections import ConnectionRegistry, QueueConnection
from idea_forge.infrastructure.persistence import InMemoryIdeaRepository, InMemoryRunRepository
from idea_forge.testing import ScriptedChatModel

MALFORMED = (
    '{"title": "Broken idea", "description": "Half an answer", '
    '"businessModel": "B2C", "marketPotential": "big",}'
)


def _competitor(score: float) -> str:
    return json.dumps({
        "competitorAnalysis": "Several telehealth incumbents.",
        "blueOceanScore": score,
        "blueOceanReasoning": "Rural niche is open.",
    })


def _critique(adjustment: float) -> str:
    return json.dumps({
        "criticalAnalysis": "Reimbursement risk.",
        "riskAdjustment": adjustment,
        "overallReasoning": "Promising with caveats.",
    })


SECTION = "### Executive Summary\n\nA concise memo."


@pytest.fixture
def model(idea_payload) -> ScriptedChatModel:
    stream = '{"ideas": [' + idea_payload("CareLink") + ", " + MALFORMED + "]}"
    return ScriptedChatModel(
        responses=[
            stream,
            _competitor(6.0), _competitor(4.0),
            _critique(1.0), _critique(-1.0),
            SECTION, SECTION,
        ],
        chunk_size=11,
    )


class TestPipelineOrchestrator:

    @pytest.mark.asyncio
    async def test_full_run(
        self, pipeline_config, emitter, published, no_sleep, model, preferences
    ) -> None:
        ideas_repo, runs_repo = InMemoryIdeaRepository(), InMemoryRunRepository()
        orchestrator = (
            PipelineBuilder()
            .with_config(pipeline_config)
            .with_model(model)
            .with_emitter(emitter)
            .with_repositories(ideas_repo, runs_repo)
            .with_sleep(no_sleep)
            .build()
        )
        result = await orchestrator.run(preferences)

        assert result.phase is PipelinePhase.DONE
        assert result.completed_stages == [
            "IdeationAgent", "CompetitorAgent", "CriticAgent", "DocumentationAgent",
        ]
        assert model.call_count == 7

        first, second = result.ideas
        assert first.title == "CareLink"
        assert second.title == "Broken idea"
        assert second.reasoning.disruption == DEFAULT_REASONING
        assert first.blue_ocean_score == 6.0
        assert second.blue_ocean_score == 4.0
        assert first.overall_score is not None and second.overall_score is not None

        report_path = Path(result.report.report_path)
        assert report_path.is_file()
        assert report_path.name == f"business-ideas-{result.run.id}.md"
        assert result.run.document_path == str(report_path)
        assert all(idea.document_path == str(report_path) for idea in result.ideas)

        ideation_complete = [
            e for e in published
            if e.stage == "IdeationAgent" and e.metadata.get("complete")
        ]
        assert ideation_complete[0].metadata["data"]["ideaCount"] == 2

        first_event, last_event = published[0], published[-1]
        assert first_event.stage == "Orchestrator"
        assert first_event.metadata["data"]["runId"] == result.run.id
        assert last_event.metadata["complete"] is True
        assert last_event.metadata["data"]["ideaCount"] == 2

        assert runs_repo.get_run(result.run.id).document_path == str(report_path)
        assert [i.id for i in ideas_repo.ideas_by_run(result.run.id)] == [i.id for i in result.ideas]
        assert all(ideas_repo.stage_of(i.id) is IdeaStage.DOCUMENTED for i in result.ideas)

    @pytest.mark.asyncio
    async def test_events_reach_connected_observers(
        self, pipeline_config, emitter, published, no_sleep, model, preferences
    ) -> None:
        connections = ConnectionRegistry(EventRingBuffer(capacity=200))
        handle = QueueConnection()
        connections.add_connection("observer", handle, subscriptions=["CriticAgent"])
        handle.drain()

        orchestrator = (
            PipelineBuilder()
            .with_config(pipeline_config)
            .with_model(model)
            .with_emitter(emitter)
            .with_connections(connections)
            .with_sleep(no_sleep)
            .build()
        )
        await orchestrator.run(preferences)

        delivered = handle.drain()
        assert delivered
        assert {m["data"]["stage"] for m in delivered} == {"CriticAgent"}
        assert len(connections.buffer) == len(published)

    @pytest.mark.asyncio
    async def test_cached_run_replays_without_producer(
        self, pipeline_config, no_sleep, model, preferences
    ) -> None:
        config = pipeline_config.with_overrides(use_cache=True)
        builder = PipelineBuilder().with_config(config).with_model(model).with_sleep(no_sleep)

        live = await builder.build().run(preferences)
        assert model.call_count == 7

        replayed = await builder.build().run(preferences)
        assert model.call_count == 7
        assert [i.to_wire() for i in replayed.ideas] == [i.to_wire() for i in live.ideas]
        assert replayed.run.id != live.run.id
        # one pause per replayed progress event: 2 ideas x 4 stages
        assert len(no_sleep.delays) == 8

    @pytest.mark.asyncio
    async def test_stage_failure_raises_pipeline_error(
        self, tmp_path, pipeline_config, emitter, published, no_sleep, model, preferences
    ) -> None:
        blocker = tmp_path / "not-a-directory"
        blocker.write_text("occupied")
        config = pipeline_config.with_overrides(docs_dir=str(blocker / "docs"))
        orchestrator = (
            PipelineBuilder()
            .with_config(config)
            .with_model(model)
            .with_emitter(emitter)
            .with_sleep(no_sleep)
            .build()
        )
        with pytest.raises(PipelineError) as excinfo:
            await orchestrator.run(preferences)

        assert excinfo.value.phase == PipelinePhase.ERROR.value
        last = published[-1]
        assert last.type is EventType.ERROR
        assert last.stage == "Orchestrator"
        assert last.metadata["data"]["runId"] == excinfo.value.run_id

    @pytest.mark.asyncio
    async def test_mode_resolution(self, pipeline_config, emitter, no_sleep, model, preferences) -> None:
        orchestrator = (
            PipelineBuilder()
            .with_config(pipeline_config)
            .with_model(model)
            .with_emitter(emitter)
            .with_sleep(no_sleep)
            .build()
        )
        result = await orchestrator.run(preferences, "Solo founder")
        assert result.mode == "solopreneur"
        assert result.run.execution_mode == "solopreneur"
        assert all(idea.execution_mode == "solopreneur" for idea in result.ideas)
        assert result.to_dict()["mode"] == "solopreneur"
