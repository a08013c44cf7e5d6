"""Infrastructure layer for idea-forge.

Re-exports the public API surface for convenience::

    from idea_forge.infrastructure import (
        EventBus, EventRingBuffer, WorkflowEventEmitter, ConnectionRegistry,
        ExecutionModeRegistry, FileCacheStore, PipelineConfig, ProducerConfig,
    )
"""

from idea_forge.infrastructure.cache import STAGE_CACHE_KEYS, FileCacheStore
from idea_forge.infrastructure.config import (
    PipelineConfig,
    ProducerConfig,
    load_config_from_json,
)
from idea_forge.infrastructure.connections import (
    ConnectionHandle,
    ConnectionRegistry,
    QueueConnection,
)
from idea_forge.infrastructure.event_bus import (
    EventBus,
    EventRingBuffer,
    WorkflowEventEmitter,
)
from idea_forge.infrastructure.llm import LLMError, Producer, ProducerFactory
from idea_forge.infrastructure.persistence import (
    IdeaRepository,
    InMemoryIdeaRepository,
    InMemoryRunRepository,
    RunRepository,
)
from idea_forge.infrastructure.registry import ExecutionModeRegistry, create_default_registry

__all__ = [
    "STAGE_CACHE_KEYS",
    "FileCacheStore",
    "PipelineConfig",
    "ProducerConfig",
    "load_config_from_json",
    "ConnectionHandle",
    "ConnectionRegistry",
    "QueueConnection",
    "EventBus",
    "EventRingBuffer",
    "WorkflowEventEmitter",
    "LLMError",
    "Producer",
    "ProducerFactory",
    "IdeaRepository",
    "InMemoryIdeaRepository",
    "InMemoryRunRepository",
    "RunRepository",
    "ExecutionModeRegistry",
    "create_default_registry",
]
