"""Pipeline orchestrator: one run of the four-stage idea pipeline.

Resolves the execution mode, creates the run record, drives the compiled
graph and reports the outcome through the event emitter.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from idea_forge.domain.entities import BusinessPreferences, DocumentationReport, Idea, Run
from idea_forge.domain.enums import EventLevel, EventType, PipelinePhase, StageName
from idea_forge.domain.exceptions import ConfigurationError, PipelineError
from idea_forge.domain.identifiers import new_ulid
from idea_forge.graph.graph import build_pipeline_graph
from idea_forge.infrastructure.cache import FileCacheStore
from idea_forge.infrastructure.config import PipelineConfig
from idea_forge.infrastructure.event_bus import WorkflowEventEmitter
from idea_forge.infrastructure.registry import ExecutionModeRegistry
from idea_forge.services.cache import CacheInterceptor, Sleep
from idea_forge.services.recorder import ResultRecorder
from idea_forge.services.stages import Stage, StageContext, StageRunner

logger = logging.getLogger(__name__)

ORCHESTRATOR = StageName.ORCHESTRATOR.value


@dataclass
class PipelineResult:
    """Final state of a completed run."""

    run: Run
    ideas: list[Idea]
    report: DocumentationReport | None
    mode: str
    phase: PipelinePhase = PipelinePhase.DONE
    completed_stages: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "runId": self.run.id,
            "mode": self.mode,
            "phase": self.phase.value,
            "reportPath": self.report.report_path if self.report else None,
            "completedStages": list(self.completed_stages),
            "ideas": [idea.to_wire() for idea in self.ideas],
        }


class PipelineOrchestrator:
    """Runs ideation, competitor analysis, critique and documentation in order.

    Parameters
    ----------
    stages:
        One stage per working phase.
    modes:
        Execution-mode registry used to resolve the run's mode tag.
    emitter:
        Event sink shared with every stage.
    config:
        Run parameters (batch size, cache, directories).
    cache_store:
        Artifact store for the cache interceptor.  Defaults to
        ``config.cache_dir``.
    recorder:
        Persists runs and ideas; defaults to a recorder with no stores.
    """

    def __init__(
        self,
        stages: Mapping[PipelinePhase, Stage],
        modes: ExecutionModeRegistry,
        emitter: WorkflowEventEmitter,
        config: PipelineConfig | None = None,
        *,
        cache_store: FileCacheStore | None = None,
        recorder: ResultRecorder | None = None,
        sleep: Sleep = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.config.validate()
        self.stages = dict(stages)
        self.modes = modes
        self.emitter = emitter
        self.cache_store = cache_store or FileCacheStore(self.config.cache_dir)
        self.recorder = recorder or ResultRecorder()
        self.runner = StageRunner(emitter)
        self._sleep = sleep
        self._rng = rng

    def _interceptor(self, use_cache: bool) -> CacheInterceptor:
        return CacheInterceptor(
            self.cache_store,
            self.runner,
            enabled=use_cache,
            min_delay=self.config.replay_min_delay,
            max_delay=self.config.replay_max_delay,
            rng=self._rng,
            sleep=self._sleep,
        )

    def _fail(self, run: Run, phase: str, exc: BaseException) -> None:
        self.emitter.emit(
            EventType.ERROR,
            ORCHESTRATOR,
            f"❌ Pipeline failed during {phase}: {exc}",
            EventLevel.ERROR,
            {"data": {"runId": run.id, "phase": phase, "error": type(exc).__name__}},
        )

    async def run(
        self,
        preferences: BusinessPreferences,
        mode_tag: str | None = None,
        *,
        user_id: str = "local",
        use_cache: bool | None = None,
    ) -> PipelineResult:
        """Execute one run and return its final ideas and report.

        Raises
        ------
        ConfigurationError
            When a producer or setting is unusable; re-raised unchanged.
        PipelineError
            When any stage fails; the run ends in the ``error`` phase.
        """
        mode = self.modes.resolve(mode_tag or self.config.execution_mode)
        use_cache = self.config.use_cache if use_cache is None else use_cache
        run = Run(
            id=new_ulid(),
            user_id=user_id,
            preferences=preferences,
            execution_mode=mode.mode,
        )
        self.recorder.record_run(run)
        logger.info("Starting run %s in %s mode (cache=%s)", run.id, mode.mode, use_cache)
        self.emitter.emit(
            EventType.STATUS,
            ORCHESTRATOR,
            f"🚀 Starting idea pipeline in {mode.profile.display_name} mode",
            metadata={
                "stage": "pipeline",
                "progress": 0,
                "data": {
                    "runId": run.id,
                    "mode": mode.mode,
                    "cached": use_cache,
                    "preferences": preferences.model_dump(mode="json", by_alias=True),
                },
            },
        )

        graph = build_pipeline_graph(self.stages, self._interceptor(use_cache), self.recorder)
        context = StageContext(run=run, mode=mode, config=self.config)
        initial: dict[str, Any] = {
            "run": run,
            "context": context,
            "ideas": [],
            "report": None,
            "phase": PipelinePhase.IDEATION.value,
            "completed_stages": [],
        }

        try:
            final = await graph.ainvoke(initial)
        except ConfigurationError as exc:
            logger.error("Run %s stopped by configuration error: %s", run.id, exc)
            self._fail(run, "configuration", exc)
            raise
        except Exception as exc:
            logger.exception("Run %s failed", run.id)
            self._fail(run, PipelinePhase.ERROR.value, exc)
            raise PipelineError(
                f"Run {run.id} failed: {exc}",
                run_id=run.id,
                phase=PipelinePhase.ERROR.value,
            ) from exc

        result = PipelineResult(
            run=final["run"],
            ideas=list(final.get("ideas", [])),
            report=final.get("report"),
            mode=mode.mode,
            phase=PipelinePhase(final.get("phase", PipelinePhase.DONE.value)),
            completed_stages=list(final.get("completed_stages", [])),
        )
        self.emitter.emit(
            EventType.STATUS,
            ORCHESTRATOR,
            f"🎉 Pipeline complete: {len(result.ideas)} ideas",
            metadata={
                "stage": "pipeline",
                "progress": 100,
                "complete": True,
                "data": {
                    "runId": run.id,
                    "ideaCount": len(result.ideas),
                    "reportPath": result.report.report_path if result.report else None,
                },
            },
        )
        logger.info("Run %s finished with %d ideas", run.id, len(result.ideas))
        return result

    def __repr__(self) -> str:
        return (
            f"PipelineOrchestrator(stages={[s.name.value for s in self.stages.values()]}, "
            f"modes={self.modes.supported_modes})"
        )
