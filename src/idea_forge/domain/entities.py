"""Domain entities for idea-forge.

Entities are closed, versioned pydantic models.  They are frozen: each
pipeline stage returns a *new* copy with additional fields populated
(``model_copy(update=...)``) and never removes a field that an earlier stage
set.  The wire format (producer output, cache artifacts, event payloads) uses
camelCase aliases; Python code uses snake_case attribute names.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from idea_forge.domain.enums import BusinessModel
from idea_forge.domain.identifiers import ULID_PATTERN

SCHEMA_VERSION = 1

DEFAULT_REASONING = "Default score assigned due to parsing failure."

_ENTITY_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
    extra="ignore",
)


class IdeaReasoning(BaseModel):
    """One free-text justification per score dimension.

    ``blue_ocean`` and ``overall`` are filled in by the competitor and critic
    stages respectively.
    """

    model_config = _ENTITY_CONFIG

    disruption: str
    market: str
    technical: str
    capital: str
    blue_ocean: str | None = None
    overall: str | None = None

    @classmethod
    def default(cls) -> IdeaReasoning:
        return cls(
            disruption=DEFAULT_REASONING,
            market=DEFAULT_REASONING,
            technical=DEFAULT_REASONING,
            capital=DEFAULT_REASONING,
        )


class Idea(BaseModel):
    """The unit of work flowing through the pipeline.

    Attributes
    ----------
    id:
        ULID assigned before generation starts.  Never regenerated.
    disruption_potential, market_potential, technical_complexity, capital_intensity:
        Integer scores in ``[1, 10]`` produced by the ideation stage.
    blue_ocean_score:
        Set by the competitor stage, ``[1, 10]``.
    overall_score:
        Set by the critic stage, ``[0, 10]``.
    document_path:
        Set by the documentation stage.
    """

    model_config = _ENTITY_CONFIG

    schema_version: int = SCHEMA_VERSION
    id: str = Field(pattern=ULID_PATTERN)
    title: str
    description: str
    business_model: BusinessModel
    disruption_potential: int = Field(ge=1, le=10)
    market_potential: int = Field(ge=1, le=10)
    technical_complexity: int = Field(ge=1, le=10)
    capital_intensity: int = Field(ge=1, le=10)
    reasoning: IdeaReasoning
    blue_ocean_score: float | None = Field(default=None, ge=1, le=10)
    overall_score: float | None = Field(default=None, ge=0, le=10)
    competitor_analysis: str | None = None
    critical_analysis: str | None = None
    document_path: str | None = None
    execution_mode: str | None = None
    starred: bool = False

    def with_reasoning(self, **reasons: str) -> Idea:
        """Return a copy whose reasoning record gained the given fields."""
        reasoning = self.reasoning.model_copy(update=reasons)
        return self.model_copy(update={"reasoning": reasoning})

    @property
    def provisional_score(self) -> float:
        """Best score known so far, used in progress events."""
        if self.overall_score is not None:
            return self.overall_score
        if self.blue_ocean_score is not None:
            return self.blue_ocean_score
        return round((self.disruption_potential + self.market_potential) / 2, 1)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class BusinessPreferences(BaseModel):
    """User preferences that seed one pipeline run."""

    model_config = _ENTITY_CONFIG

    vertical: str
    sub_vertical: str
    business_model: str
    additional_context: str | None = None

    def describe(self) -> str:
        text = f"{self.vertical} / {self.sub_vertical} ({self.business_model})"
        if self.additional_context:
            text += f". Additional context: {self.additional_context}"
        return text


class Run(BaseModel):
    """One execution of the pipeline for one set of preferences.

    ``document_path`` is the single mutation point; it is set once the
    documentation stage has written its report.
    """

    model_config = _ENTITY_CONFIG

    id: str = Field(pattern=ULID_PATTERN)
    user_id: str = "local"
    preferences: BusinessPreferences
    execution_mode: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    document_path: str | None = None


class DocumentationReport(BaseModel):
    """Output summary of the documentation stage."""

    model_config = _ENTITY_CONFIG

    report_path: str
    processing_time: int = Field(ge=0, description="Milliseconds spent documenting")
    ideas_processed: int = Field(ge=0)


class StageOutput(BaseModel):
    """Result value of one stage; also the cached artifact shape."""

    model_config = _ENTITY_CONFIG

    ideas: list[Idea] = Field(default_factory=list)
    report: DocumentationReport | None = None
