"""Service layer for idea-forge.

Re-exports the stages and the parsing machinery they share::

    from idea_forge.services import (
        IdeationStage, CompetitorStage, CriticStage, DocumentationStage,
        StageRunner, CacheInterceptor, IncrementalExtractor, JSONRecoveryEngine,
    )
"""

from idea_forge.services.cache import CacheInterceptor
from idea_forge.services.competitor import CompetitorStage
from idea_forge.services.critic import CriticStage
from idea_forge.services.documentation import DocumentationStage
from idea_forge.services.extraction import (
    Candidate,
    ExtractionResult,
    IncrementalExtractor,
    extract_objects,
)
from idea_forge.services.ideation import IdeationStage
from idea_forge.services.recorder import ResultRecorder
from idea_forge.services.recovery import JSONRecoveryEngine, RecoveryResult, RecoveryStep
from idea_forge.services.stages import (
    PerIdeaStage,
    Stage,
    StageContext,
    StageRunner,
)

__all__ = [
    # Stages
    "Stage",
    "PerIdeaStage",
    "StageContext",
    "StageRunner",
    "IdeationStage",
    "CompetitorStage",
    "CriticStage",
    "DocumentationStage",
    # Parsing
    "Candidate",
    "ExtractionResult",
    "IncrementalExtractor",
    "extract_objects",
    "JSONRecoveryEngine",
    "RecoveryResult",
    "RecoveryStep",
    # Plumbing
    "CacheInterceptor",
    "ResultRecorder",
]
