"""Graph construction for the idea pipeline.

Builds a LangGraph ``StateGraph`` that runs the four stages in order::

    START -> ideation -> competitor -> critic -> documentation -> END

Every stage node is followed by a conditional edge so a run that lands in
a terminal phase ends immediately.
"""

from __future__ import annotations

import logging
from typing import Any

from langgraph.graph import END, START, StateGraph

from idea_forge.domain.enums import PipelinePhase
from idea_forge.graph.edges import PHASE_NODES, route_next
from idea_forge.graph.nodes import make_stage_node
from idea_forge.graph.state import PipelineState
from idea_forge.services.cache import CacheInterceptor
from idea_forge.services.recorder import ResultRecorder
from idea_forge.services.stages import Stage

logger = logging.getLogger(__name__)


def build_pipeline_graph(
    stages: dict[PipelinePhase, Stage],
    interceptor: CacheInterceptor,
    recorder: ResultRecorder,
    **compile_kwargs: Any,
) -> Any:
    """Build and compile the pipeline graph.

    Parameters
    ----------
    stages:
        One stage per working phase (ideation, competitor analysis,
        critique, documentation).
    interceptor:
        Cache interceptor every stage runs through.
    recorder:
        Persists stage outputs.
    **compile_kwargs:
        Passed to ``graph.compile()`` (e.g. ``checkpointer``).

    Returns
    -------
    CompiledStateGraph
        Invoke with ``graph.ainvoke(initial_state)``.
    """
    missing = [phase.value for phase in PHASE_NODES if phase not in stages]
    if missing:
        raise ValueError(f"No stage configured for phases: {missing}")

    graph = StateGraph(PipelineState)

    for phase, node_name in PHASE_NODES.items():
        graph.add_node(node_name, make_stage_node(stages[phase], interceptor, recorder, phase))

    graph.add_edge(START, PHASE_NODES[PipelinePhase.IDEATION])

    routes = {name: name for name in PHASE_NODES.values()}
    routes[END] = END
    for node_name in PHASE_NODES.values():
        graph.add_conditional_edges(node_name, route_next, routes)

    compiled = graph.compile(**compile_kwargs)
    logger.debug("Pipeline graph compiled with %d stage nodes", len(PHASE_NODES))
    return compiled
