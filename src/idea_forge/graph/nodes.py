"""Node functions for the pipeline graph.

Each node is created by a factory closure that captures one stage together
with the cache interceptor and the recorder, and returns a partial state
update dict.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from idea_forge.domain.enums import PipelinePhase
from idea_forge.graph.edges import next_phase
from idea_forge.services.cache import CacheInterceptor
from idea_forge.services.recorder import ResultRecorder
from idea_forge.services.stages import Stage

logger = logging.getLogger(__name__)


def make_stage_node(
    stage: Stage,
    interceptor: CacheInterceptor,
    recorder: ResultRecorder,
    phase: PipelinePhase,
) -> Callable[[dict[str, Any]], Any]:
    """Create the async node that runs *stage* during *phase*.

    The node runs the stage through the cache interceptor, persists the
    output and advances the phase.  Stage errors propagate to the
    orchestrator, which moves the run to ``ERROR``.
    """

    async def stage_node(state: dict[str, Any]) -> dict[str, Any]:
        context = state["context"]
        run = state["run"]
        ideas = state.get("ideas", [])
        logger.debug("%s node: %d ideas in", stage.name.value, len(ideas))

        output = await interceptor.run_stage(stage, ideas, context)
        recorder.record_stage(stage.persist_as, output, run)

        update: dict[str, Any] = {
            "ideas": list(output.ideas),
            "phase": next_phase(phase).value,
            "completed_stages": [stage.name.value],
        }
        if output.report is not None:
            update["report"] = output.report
            update["run"] = run.model_copy(update={"document_path": output.report.report_path})
        return update

    stage_node.__name__ = f"{phase.value}_node"
    return stage_node
