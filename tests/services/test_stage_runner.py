"""Tests for the stage channel and StageRunner."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence

import pytest

from idea_forge.domain.entities import Idea, StageOutput
from idea_forge.domain.enums import EventType, IdeaStage, StageName
from idea_forge.domain.events import StageEvent, StageMessage, StageResult
from idea_forge.domain.exceptions import StageError
from idea_forge.services.stages import Stage, StageContext, StageRunner, percent


class _ScriptStage(Stage):
    name = StageName.CRITIC
    label = "script"
    cache_key = "script.json"
    persist_as = IdeaStage.CRITIC
    consumes_ideas = False

    def __init__(self, messages: list[StageMessage]) -> None:
        super().__init__(producer=None)  # type: ignore[arg-type]
        self.messages = messages

    async def execute(
        self, ideas: Sequence[Idea], context: StageContext
    ) -> AsyncIterator[StageMessage]:
        for message in self.messages:
            yield message


class TestStageRunner:

    @pytest.mark.asyncio
    async def test_publishes_events_and_returns_output(
        self, context, emitter, published, make_idea
    ) -> None:
        output = StageOutput(ideas=[make_idea()])
        stage = _ScriptStage([
            StageEvent(EventType.STATUS, "starting", metadata={"progress": 0}),
            StageEvent(EventType.PROGRESS, "halfway", metadata={"progress": 50}),
            StageResult(output),
        ])
        result = await StageRunner(emitter).drive(stage, [], context)

        assert result is output
        assert [e.message for e in published] == ["starting", "halfway"]
        assert all(e.stage == "CriticAgent" for e in published)
        assert published[1].metadata["progress"] == 50

    @pytest.mark.asyncio
    async def test_missing_result(self, context, emitter) -> None:
        stage = _ScriptStage([StageEvent(EventType.STATUS, "starting")])
        with pytest.raises(StageError, match="without a result"):
            await StageRunner(emitter).drive(stage, [], context)

    @pytest.mark.asyncio
    async def test_message_after_result(self, context, emitter) -> None:
        stage = _ScriptStage([
            StageResult(StageOutput()),
            StageEvent(EventType.STATUS, "late"),
        ])
        with pytest.raises(StageError, match="after its result"):
            await StageRunner(emitter).drive(stage, [], context)


class TestStageEvents:

    def test_replay_events_mirror_live_shape(self, context, make_idea) -> None:
        stage = _ScriptStage([])
        output = StageOutput(ideas=[make_idea(), make_idea()])
        events = stage.replay_events(output, context)
        assert [e.type for e in events] == [
            EventType.STATUS, EventType.PROGRESS, EventType.PROGRESS,
            EventType.STATUS, EventType.RESULT,
        ]
        assert events[0].metadata["data"]["cached"] is True
        assert [e.metadata["progress"] for e in events[1:3]] == [50, 100]

    def test_percent(self) -> None:
        assert percent(0, 4) == 25
        assert percent(3, 4) == 100
        assert percent(0, 0) == 100
