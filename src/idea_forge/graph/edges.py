"""Phase transitions and conditional edges for the pipeline graph.

``Ideation -> CompetitorAnalysis -> Critique -> Documentation -> Done``, with
``Error`` reachable from any phase and absorbing.
"""

from __future__ import annotations

from typing import Any

from langgraph.graph import END

from idea_forge.domain.enums import PipelinePhase

PHASE_ORDER: tuple[PipelinePhase, ...] = (
    PipelinePhase.IDEATION,
    PipelinePhase.COMPETITOR_ANALYSIS,
    PipelinePhase.CRITIQUE,
    PipelinePhase.DOCUMENTATION,
    PipelinePhase.DONE,
)

# Graph node that executes each working phase.
PHASE_NODES: dict[PipelinePhase, str] = {
    PipelinePhase.IDEATION: "ideation",
    PipelinePhase.COMPETITOR_ANALYSIS: "competitor",
    PipelinePhase.CRITIQUE: "critic",
    PipelinePhase.DOCUMENTATION: "documentation",
}


def next_phase(phase: PipelinePhase) -> PipelinePhase:
    """Phase that follows *phase*; terminal phases map to themselves."""
    if phase in (PipelinePhase.DONE, PipelinePhase.ERROR):
        return phase
    return PHASE_ORDER[PHASE_ORDER.index(phase) + 1]


def is_valid_transition(current: PipelinePhase, target: PipelinePhase) -> bool:
    if current is PipelinePhase.ERROR:
        return False
    if target is PipelinePhase.ERROR:
        return current is not PipelinePhase.DONE
    return current is not PipelinePhase.DONE and next_phase(current) is target


def route_next(state: dict[str, Any]) -> str:
    """After a stage node, go to the node for the new phase or end the run."""
    phase = PipelinePhase(state.get("phase", PipelinePhase.ERROR.value))
    node = PHASE_NODES.get(phase)
    return node if node is not None else END
