"""Domain layer: entities, events, enums, identifiers and exceptions."""

from idea_forge.domain.entities import (
    DEFAULT_REASONING,
    BusinessPreferences,
    DocumentationReport,
    Idea,
    IdeaReasoning,
    Run,
    StageOutput,
)
from idea_forge.domain.enums import (
    BusinessModel,
    EventLevel,
    EventType,
    IdeaStage,
    PipelinePhase,
    StageName,
)
from idea_forge.domain.events import StageEvent, StageMessage, StageResult, WorkflowEvent
from idea_forge.domain.exceptions import (
    CacheError,
    ConfigurationError,
    IdeaForgeError,
    PersistenceError,
    PipelineError,
    RecoveryError,
    StageError,
)
from idea_forge.domain.identifiers import is_ulid, new_ulid

__all__ = [
    "DEFAULT_REASONING",
    "BusinessModel",
    "BusinessPreferences",
    "CacheError",
    "ConfigurationError",
    "DocumentationReport",
    "EventLevel",
    "EventType",
    "Idea",
    "IdeaForgeError",
    "IdeaReasoning",
    "IdeaStage",
    "PersistenceError",
    "PipelineError",
    "PipelinePhase",
    "RecoveryError",
    "Run",
    "StageError",
    "StageEvent",
    "StageMessage",
    "StageName",
    "StageOutput",
    "StageResult",
    "WorkflowEvent",
    "is_ulid",
    "new_ulid",
]
