"""Shared fixtures for the idea-forge test suite."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import pytest

from idea_forge.domain.entities import BusinessPreferences, Idea, IdeaReasoning, Run
from idea_forge.domain.enums import BusinessModel
from idea_forge.domain.events import WorkflowEvent
from idea_forge.domain.identifiers import new_ulid
from idea_forge.infrastructure.config import PipelineConfig
from idea_forge.infrastructure.event_bus import EventBus, WorkflowEventEmitter
from idea_forge.infrastructure.llm import Producer
from idea_forge.modes import ClassicStartupMode, SolopreneurMode
from idea_forge.services.stages import StageContext
from idea_forge.testing import ScriptedChatModel

# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def preferences() -> BusinessPreferences:
    return BusinessPreferences(
        vertical="Health",
        sub_vertical="Telemedicine",
        business_model="B2C",
    )


@pytest.fixture
def make_idea() -> Callable[..., Idea]:
    """Factory for fully-populated ideation-stage ideas."""

    def _make(**overrides: Any) -> Idea:
        data: dict[str, Any] = {
            "id": new_ulid(),
            "title": "CareLink",
            "description": "AI triage platform connecting patients with remote doctors.",
            "business_model": BusinessModel.B2C,
            "disruption_potential": 8,
            "market_potential": 7,
            "technical_complexity": 4,
            "capital_intensity": 3,
            "reasoning": IdeaReasoning(
                disruption="Replaces waiting rooms.",
                market="Large addressable market.",
                technical="Uses existing video APIs.",
                capital="Software only.",
            ),
        }
        data.update(overrides)
        return Idea(**data)

    return _make


@pytest.fixture
def idea_payload() -> Callable[..., str]:
    """Build the JSON text of one idea as a producer would stream it."""

    def _payload(title: str = "CareLink", **overrides: Any) -> str:
        data: dict[str, Any] = {
            "title": title,
            "description": f"{title} connects patients with remote doctors.",
            "businessModel": "B2C",
            "disruptionPotential": 7,
            "marketPotential": 8,
            "technicalComplexity": 5,
            "capitalIntensity": 4,
            "reasoning": {
                "disruption": "Removes the clinic visit.",
                "market": "Every household is a customer.",
                "technical": "Video and scheduling are solved problems.",
                "capital": "Low upfront spend.",
            },
        }
        data.update(overrides)
        return json.dumps(data)

    return _payload


# ---------------------------------------------------------------------------
# Pipeline fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def classic_mode() -> ClassicStartupMode:
    return ClassicStartupMode()


@pytest.fixture
def solo_mode() -> SolopreneurMode:
    return SolopreneurMode()


@pytest.fixture
def pipeline_config(tmp_path: Any) -> PipelineConfig:
    return PipelineConfig(
        batch_size=2,
        cache_dir=str(tmp_path / "cache"),
        docs_dir=str(tmp_path / "docs"),
        replay_min_delay=0.0,
        replay_max_delay=0.0,
    )


@pytest.fixture
def run(preferences: BusinessPreferences) -> Run:
    return Run(id=new_ulid(), preferences=preferences, execution_mode="classic-startup")


@pytest.fixture
def context(
    run: Run, classic_mode: ClassicStartupMode, pipeline_config: PipelineConfig
) -> StageContext:
    return StageContext(run=run, mode=classic_mode, config=pipeline_config)


@pytest.fixture
def emitter() -> WorkflowEventEmitter:
    return WorkflowEventEmitter(EventBus())


@pytest.fixture
def published(emitter: WorkflowEventEmitter) -> list[WorkflowEvent]:
    """Every event the ``emitter`` fixture publishes, in order."""
    received: list[WorkflowEvent] = []
    emitter.bus.subscribe_all(received.append)
    return received


@pytest.fixture
def scripted() -> Callable[..., Producer]:
    """Producer over a :class:`ScriptedChatModel` with the given responses."""

    def _producer(*responses: Any, chunk_size: int = 16) -> Producer:
        model = ScriptedChatModel(responses=list(responses), chunk_size=chunk_size)
        return Producer(model, name="scripted")

    return _producer


@pytest.fixture
def no_sleep() -> Callable[[float], Any]:
    delays: list[float] = []

    async def _sleep(delay: float) -> None:
        delays.append(delay)

    _sleep.delays = delays  # type: ignore[attr-defined]
    return _sleep
