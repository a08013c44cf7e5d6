"""Best-effort persistence of run and idea state after each stage.

The store is optional: a failed write is logged and the run proceeds.
"""

from __future__ import annotations

import logging

from idea_forge.domain.entities import Run, StageOutput
from idea_forge.domain.enums import IdeaStage
from idea_forge.infrastructure.persistence import IdeaRepository, RunRepository

logger = logging.getLogger(__name__)


class ResultRecorder:
    """Writes stage outputs to the idea and run repositories.

    Parameters
    ----------
    ideas:
        Idea store, or ``None`` to skip idea persistence.
    runs:
        Run store, or ``None`` to skip run persistence.
    """

    def __init__(
        self,
        ideas: IdeaRepository | None = None,
        runs: RunRepository | None = None,
    ) -> None:
        self.ideas = ideas
        self.runs = runs
        self.failures = 0

    def record_run(self, run: Run) -> None:
        if self.runs is None:
            return
        try:
            self.runs.create_run(run)
        except Exception:
            self.failures += 1
            logger.warning("Could not persist run %s", run.id, exc_info=True)

    def record_stage(self, stage: IdeaStage, output: StageOutput, run: Run) -> None:
        """Persist every idea of *output* as having reached *stage*."""
        if self.ideas is not None:
            for idea in output.ideas:
                try:
                    if stage is IdeaStage.IDEATION:
                        self.ideas.create_idea(run.id, run.user_id, idea)
                    else:
                        self.ideas.update_idea_stage(idea.id, stage, idea)
                    if stage is IdeaStage.DOCUMENTED and idea.document_path:
                        self.ideas.update_idea_document_path(idea.id, idea.document_path)
                except Exception:
                    self.failures += 1
                    logger.warning(
                        "Could not persist idea %s at stage %s", idea.id, stage.value,
                        exc_info=True,
                    )
        if self.runs is not None and output.report is not None:
            try:
                self.runs.update_run_document_path(run.id, output.report.report_path)
            except Exception:
                self.failures += 1
                logger.warning("Could not persist report path for run %s", run.id, exc_info=True)
