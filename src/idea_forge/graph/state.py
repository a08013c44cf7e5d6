"""LangGraph state definition for the idea pipeline.

Defines ``PipelineState``, a ``TypedDict`` that flows through the LangGraph
``StateGraph``.  ``ideas`` is replaced wholesale by each stage (each stage
returns the full list with more fields populated); ``completed_stages`` is
an append-only channel using ``Annotated[list, operator.add]``.

Note: We intentionally do NOT use ``from __future__ import annotations`` because
LangGraph needs to resolve type hints at runtime via ``get_type_hints()``.
"""

import operator
from typing import Annotated, Optional, TypedDict

from idea_forge.domain.entities import DocumentationReport, Idea, Run
from idea_forge.services.stages import StageContext


class PipelineState(TypedDict, total=False):
    """State of one pipeline run.

    Attributes
    ----------
    run:
        The run record; its ``document_path`` is set after documentation.
    context:
        Run context (mode, config) threaded unchanged through every stage.
    ideas:
        Current idea list in pipeline order.
    report:
        Documentation output, once produced.
    phase:
        Current :class:`~idea_forge.domain.enums.PipelinePhase` value.
    completed_stages:
        Names of the stages that finished, in order.
    """

    run: Run
    context: StageContext
    ideas: list[Idea]
    report: Optional[DocumentationReport]
    phase: str
    completed_stages: Annotated[list[str], operator.add]
