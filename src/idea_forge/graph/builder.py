"""Fluent builder for assembling a :class:`PipelineOrchestrator`.

Every collaborator has a default: producers come from a
:class:`~idea_forge.infrastructure.llm.ProducerFactory` built from
environment configuration, modes from the built-in registry, and events go
to a fresh emitter.  Tests typically inject a single scripted model with
``.with_model()``.
"""

from __future__ import annotations

import asyncio
import random
from typing import Any

from idea_forge.domain.enums import PipelinePhase, StageName
from idea_forge.graph.orchestrator import PipelineOrchestrator
from idea_forge.infrastructure.cache import FileCacheStore
from idea_forge.infrastructure.config import PipelineConfig, ProducerConfig
from idea_forge.infrastructure.connections import ConnectionRegistry
from idea_forge.infrastructure.event_bus import WorkflowEventEmitter
from idea_forge.infrastructure.llm import Producer, ProducerFactory
from idea_forge.infrastructure.persistence import IdeaRepository, RunRepository
from idea_forge.infrastructure.registry import ExecutionModeRegistry, create_default_registry
from idea_forge.services.cache import Sleep
from idea_forge.services.competitor import CompetitorStage
from idea_forge.services.critic import CriticStage
from idea_forge.services.documentation import DocumentationStage
from idea_forge.services.ideation import IdeationStage
from idea_forge.services.recorder import ResultRecorder

STAGE_PHASES: dict[StageName, PipelinePhase] = {
    StageName.IDEATION: PipelinePhase.IDEATION,
    StageName.COMPETITOR: PipelinePhase.COMPETITOR_ANALYSIS,
    StageName.CRITIC: PipelinePhase.CRITIQUE,
    StageName.DOCUMENTATION: PipelinePhase.DOCUMENTATION,
}


class PipelineBuilder:
    """Fluent builder for the idea pipeline.

    Example::

        orchestrator = (
            PipelineBuilder()
            .with_config(PipelineConfig(batch_size=5, use_cache=True))
            .with_model(ChatOpenAI(model="gpt-4o"))
            .with_connections(connections)
            .build()
        )
        result = await orchestrator.run(preferences, "solopreneur")
    """

    def __init__(self) -> None:
        self._config: PipelineConfig | None = None
        self._producer_config: ProducerConfig | None = None
        self._default_producer: Producer | None = None
        self._stage_producers: dict[StageName, Producer] = {}
        self._modes: ExecutionModeRegistry | None = None
        self._emitter: WorkflowEventEmitter | None = None
        self._connections: ConnectionRegistry | None = None
        self._ideas: IdeaRepository | None = None
        self._runs: RunRepository | None = None
        self._cache_store: FileCacheStore | None = None
        self._sleep: Sleep = asyncio.sleep
        self._rng: random.Random | None = None

    # -- configuration --------------------------------------------------------

    def with_config(self, config: PipelineConfig) -> PipelineBuilder:
        self._config = config
        return self

    def with_producer_config(self, config: ProducerConfig) -> PipelineBuilder:
        self._producer_config = config
        return self

    # -- producers ------------------------------------------------------------

    def with_producer(self, producer: Producer) -> PipelineBuilder:
        """Use *producer* for every stage without an explicit override."""
        self._default_producer = producer
        return self

    def with_model(self, model: Any, name: str = "") -> PipelineBuilder:
        """Wrap a LangChain chat model as the default producer."""
        return self.with_producer(Producer(model, name))

    def with_stage_producer(self, stage: StageName, producer: Producer) -> PipelineBuilder:
        self._stage_producers[stage] = producer
        return self

    # -- collaborators --------------------------------------------------------

    def with_modes(self, registry: ExecutionModeRegistry) -> PipelineBuilder:
        self._modes = registry
        return self

    def with_emitter(self, emitter: WorkflowEventEmitter) -> PipelineBuilder:
        self._emitter = emitter
        return self

    def with_connections(self, connections: ConnectionRegistry) -> PipelineBuilder:
        """Broadcast every emitted event to *connections*."""
        self._connections = connections
        return self

    def with_repositories(
        self,
        ideas: IdeaRepository | None = None,
        runs: RunRepository | None = None,
    ) -> PipelineBuilder:
        self._ideas = ideas
        self._runs = runs
        return self

    def with_cache_store(self, store: FileCacheStore) -> PipelineBuilder:
        self._cache_store = store
        return self

    def with_sleep(self, sleep: Sleep) -> PipelineBuilder:
        """Replace the replay pause (tests pass a no-op)."""
        self._sleep = sleep
        return self

    def with_rng(self, rng: random.Random) -> PipelineBuilder:
        self._rng = rng
        return self

    # -- build ----------------------------------------------------------------

    def _producers(self) -> dict[StageName, Producer]:
        producers = dict(self._stage_producers)
        missing = [stage for stage in STAGE_PHASES if stage not in producers]
        if not missing:
            return producers
        if self._default_producer is not None:
            for stage in missing:
                producers[stage] = self._default_producer
            return producers
        factory = ProducerFactory(self._producer_config or ProducerConfig.from_env())
        for stage in missing:
            producers[stage] = factory.create_producer(stage)
        return producers

    def build(self) -> PipelineOrchestrator:
        """Validate the configuration and assemble the orchestrator.

        Raises
        ------
        ConfigurationError
            If producers must be built from configuration and no provider
            credential is available.
        """
        config = self._config or PipelineConfig.from_env()
        config.validate()
        producers = self._producers()

        stages = {
            STAGE_PHASES[StageName.IDEATION]: IdeationStage(producers[StageName.IDEATION]),
            STAGE_PHASES[StageName.COMPETITOR]: CompetitorStage(producers[StageName.COMPETITOR]),
            STAGE_PHASES[StageName.CRITIC]: CriticStage(producers[StageName.CRITIC]),
            STAGE_PHASES[StageName.DOCUMENTATION]: DocumentationStage(
                producers[StageName.DOCUMENTATION]
            ),
        }

        emitter = self._emitter or WorkflowEventEmitter()
        if self._connections is not None:
            emitter.bus.subscribe_all(self._connections.broadcast)

        return PipelineOrchestrator(
            stages,
            self._modes or create_default_registry(),
            emitter,
            config,
            cache_store=self._cache_store,
            recorder=ResultRecorder(self._ideas, self._runs),
            sleep=self._sleep,
            rng=self._rng,
        )

    def __repr__(self) -> str:
        return (
            f"PipelineBuilder(config={self._config!r}, "
            f"stage_overrides={[s.value for s in self._stage_producers]})"
        )
