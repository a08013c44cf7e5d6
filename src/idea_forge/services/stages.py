"""Stage framework: context, base classes and the stage runner.

A stage is an async generator of :data:`~idea_forge.domain.events.StageMessage`:
any number of ``StageEvent`` messages followed by exactly one
``StageResult``.  :class:`StageRunner` consumes that channel, stamps each
event with the stage name, publishes it through the event emitter and
returns the final output.

Ideas within a stage are processed strictly sequentially; every idea gets a
result, degraded if necessary, so one idea's failure never stalls the ones
behind it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from idea_forge.domain.entities import BusinessPreferences, Idea, Run, StageOutput
from idea_forge.domain.enums import EventLevel, EventType, IdeaStage, StageName
from idea_forge.domain.events import StageEvent, StageMessage, StageResult
from idea_forge.domain.exceptions import StageError
from idea_forge.infrastructure.config import PipelineConfig
from idea_forge.infrastructure.event_bus import WorkflowEventEmitter
from idea_forge.infrastructure.llm import LLMError, Producer
from idea_forge.modes.base import ExecutionMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageContext:
    """Run-wide values threaded unchanged through every stage."""

    run: Run
    mode: ExecutionMode
    config: PipelineConfig

    @property
    def preferences(self) -> BusinessPreferences:
        return self.run.preferences


def percent(index: int, total: int) -> int:
    return round((index + 1) / total * 100) if total else 100


# ===================================================================== #
#  Base stage                                                            #
# ===================================================================== #

class Stage(ABC):
    """Base class for the four pipeline stages.

    Subclasses set ``name``, ``label`` (the sub-stage tag placed in event
    metadata), ``cache_key`` and ``persist_as`` and implement
    :meth:`execute`.
    """

    name: StageName
    label: str
    cache_key: str
    persist_as: IdeaStage
    consumes_ideas: bool = True

    def __init__(self, producer: Producer) -> None:
        self.producer = producer

    async def run(
        self, ideas: Sequence[Idea], context: StageContext
    ) -> AsyncIterator[StageMessage]:
        """Yield this stage's events followed by its result."""
        if self.consumes_ideas and not ideas:
            logger.info("%s received no ideas; skipping", self.name.value)
            yield self.skip_event()
            yield StageResult(StageOutput())
            return
        async for message in self.execute(ideas, context):
            yield message

    @abstractmethod
    def execute(
        self, ideas: Sequence[Idea], context: StageContext
    ) -> AsyncIterator[StageMessage]:
        ...

    # -- event construction ---------------------------------------------------

    def skip_event(self) -> StageEvent:
        return StageEvent(
            EventType.STATUS,
            "No ideas to process; skipping stage",
            metadata={"stage": self.label, "data": {"ideaCount": 0, "skipped": True}},
        )

    def start_message(self, total: int, context: StageContext) -> str:
        return f"Starting {self.label} for {total} ideas"

    def start_event(self, total: int, context: StageContext, cached: bool = False) -> StageEvent:
        message = (
            f"📦 Loading {total} cached results for {self.label}"
            if cached
            else self.start_message(total, context)
        )
        return StageEvent(
            EventType.STATUS,
            message,
            metadata={
                "stage": self.label,
                "progress": 0,
                "data": {"total": total, "mode": context.mode.mode, "cached": cached},
            },
        )

    def progress_message(self, index: int, total: int, idea: Idea) -> str:
        return f"Processed idea {index + 1}/{total}: {idea.title}"

    def progress_data(self, idea: Idea, context: StageContext) -> dict[str, Any]:
        return {}

    def progress_event(
        self, index: int, total: int, idea: Idea, context: StageContext
    ) -> StageEvent:
        data = {
            "ideaId": idea.id,
            "title": idea.title,
            "index": index + 1,
            "total": total,
            "provisionalScore": idea.provisional_score,
            **self.progress_data(idea, context),
        }
        return StageEvent(
            EventType.PROGRESS,
            self.progress_message(index, total, idea),
            metadata={"stage": self.label, "progress": percent(index, total), "data": data},
        )

    def error_event(self, idea: Idea | None, exc: BaseException, transient: bool) -> StageEvent:
        subject = f" for {idea.title!r}" if idea is not None else ""
        kind = "Producer error" if transient else "Unexpected error"
        return StageEvent(
            EventType.ERROR,
            f"{kind}{subject}: {exc}",
            level=EventLevel.ERROR,
            metadata={
                "stage": self.label,
                "data": {"ideaId": idea.id if idea else None, "transient": transient},
            },
        )

    def complete_events(
        self, output: StageOutput, extra: Mapping[str, Any] | None = None
    ) -> list[StageEvent]:
        count = len(output.ideas)
        data = {"ideaCount": count, **(extra or {})}
        return [
            StageEvent(
                EventType.STATUS,
                f"✅ {self.label.capitalize()} complete: {count} ideas",
                metadata={"stage": self.label, "progress": 100, "complete": True, "data": data},
            ),
            StageEvent(
                EventType.RESULT,
                f"{self.label.capitalize()} produced {count} ideas",
                metadata={
                    "stage": self.label,
                    "data": {**self.result_data(output), "ideaCount": count},
                },
            ),
        ]

    def result_data(self, output: StageOutput) -> dict[str, Any]:
        return {"ideaIds": [idea.id for idea in output.ideas]}

    def replay_events(self, output: StageOutput, context: StageContext) -> list[StageEvent]:
        """Synthetic event sequence matching a failure-free live run that produced *output*.

        Error events are not stored with the output and are never replayed.
        """
        ideas = output.ideas
        if self.consumes_ideas and not ideas:
            return [self.skip_event()]
        total = len(ideas)
        events = [self.start_event(total, context, cached=True)]
        events.extend(self.progress_event(i, total, idea, context) for i, idea in enumerate(ideas))
        events.extend(self.complete_events(output))
        return events

    def __repr__(self) -> str:
        return f"{type(self).__name__}(producer={self.producer!r})"


# ===================================================================== #
#  Per-idea stage                                                        #
# ===================================================================== #

class PerIdeaStage(Stage):
    """Stage making one non-streaming producer call per idea.

    :meth:`process_idea` does the work; :meth:`degrade` supplies the fixed
    fallback when the producer fails.
    """

    @abstractmethod
    async def process_idea(self, idea: Idea, context: StageContext) -> Idea:
        ...

    @abstractmethod
    def degrade(self, idea: Idea, context: StageContext) -> Idea:
        ...

    async def execute(
        self, ideas: Sequence[Idea], context: StageContext
    ) -> AsyncIterator[StageMessage]:
        total = len(ideas)
        yield self.start_event(total, context)
        results: list[Idea] = []
        for index, idea in enumerate(ideas):
            try:
                updated = await self.process_idea(idea, context)
            except LLMError as exc:
                logger.warning("%s: producer failed for %s: %s", self.name.value, idea.id, exc)
                yield self.error_event(idea, exc, transient=True)
                updated = self.degrade(idea, context)
            except Exception as exc:
                logger.exception("%s: unexpected failure for %s", self.name.value, idea.id)
                yield self.error_event(idea, exc, transient=False)
                updated = self.degrade(idea, context)
            if updated.id != idea.id:
                logger.warning(
                    "%s changed idea id %s -> %s; restoring", self.name.value, idea.id, updated.id
                )
                updated = updated.model_copy(update={"id": idea.id})
            results.append(updated)
            yield self.progress_event(index, total, updated, context)

        output = StageOutput(ideas=results)
        for event in self.complete_events(output):
            yield event
        yield StageResult(output)


# ===================================================================== #
#  Runner                                                                #
# ===================================================================== #

class StageRunner:
    """Drives a stage's message channel into the event emitter."""

    def __init__(self, emitter: WorkflowEventEmitter) -> None:
        self.emitter = emitter

    def publish(self, stage: Stage, event: StageEvent) -> None:
        self.emitter.emit(
            event.type, stage.name.value, event.message, event.level, event.metadata
        )

    async def drive(
        self, stage: Stage, ideas: Sequence[Idea], context: StageContext
    ) -> StageOutput:
        """Run *stage* live and return its output.

        Raises
        ------
        StageError
            If the stage ends without a result or emits after its result.
        """
        output: StageOutput | None = None
        async for message in stage.run(ideas, context):
            if output is not None:
                raise StageError("Stage emitted a message after its result", stage=stage.name.value)
            if isinstance(message, StageResult):
                output = message.output
            else:
                self.publish(stage, message)
        if output is None:
            raise StageError("Stage finished without a result", stage=stage.name.value)
        return output
