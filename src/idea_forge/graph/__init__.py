"""LangGraph wiring for the idea pipeline."""

from idea_forge.graph.builder import PipelineBuilder
from idea_forge.graph.edges import is_valid_transition, next_phase, route_next
from idea_forge.graph.graph import build_pipeline_graph
from idea_forge.graph.nodes import make_stage_node
from idea_forge.graph.orchestrator import PipelineOrchestrator, PipelineResult
from idea_forge.graph.state import PipelineState

__all__ = [
    "PipelineBuilder",
    "PipelineOrchestrator",
    "PipelineResult",
    "PipelineState",
    "build_pipeline_graph",
    "is_valid_transition",
    "make_stage_node",
    "next_phase",
    "route_next",
]
