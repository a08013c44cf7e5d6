"""Domain enumerations for idea-forge.

These enums capture the fixed vocabularies used across the domain layer:
business-model tags, workflow event types and levels, persistence stages and
the pipeline's finite-state-machine phases.
"""

from enum import Enum


class BusinessModel(str, Enum):
    """Business-model tag carried by every idea."""

    B2B = "B2B"
    B2C = "B2C"
    B2B2C = "B2B2C"
    MARKETPLACE = "Marketplace"
    SAAS = "SaaS"
    DTC = "DTC"


class EventType(str, Enum):
    """Coarse classification of a workflow event."""

    STATUS = "status"
    PROGRESS = "progress"
    RESULT = "result"
    ERROR = "error"
    LOG = "log"


class EventLevel(str, Enum):
    """Severity of a workflow event."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class IdeaStage(str, Enum):
    """Last pipeline stage whose fields were persisted for an idea."""

    IDEATION = "ideation"
    COMPETITOR = "competitor"
    CRITIC = "critic"
    DOCUMENTED = "documented"


class PipelinePhase(str, Enum):
    """Finite-state-machine states of one pipeline run."""

    IDEATION = "ideation"
    COMPETITOR_ANALYSIS = "competitor_analysis"
    CRITIQUE = "critique"
    DOCUMENTATION = "documentation"
    DONE = "done"
    ERROR = "error"  # absorbing


class StageName(str, Enum):
    """Names of the components that emit workflow events."""

    ORCHESTRATOR = "Orchestrator"
    IDEATION = "IdeationAgent"
    COMPETITOR = "CompetitorAgent"
    CRITIC = "CriticAgent"
    DOCUMENTATION = "DocumentationAgent"
