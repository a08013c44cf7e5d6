"""Documentation stage: one markdown report covering every idea."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import AsyncIterator, Sequence
from pathlib import Path
from typing import Any

from idea_forge.domain.entities import DocumentationReport, Idea, StageOutput
from idea_forge.domain.enums import IdeaStage, StageName
from idea_forge.domain.events import StageMessage, StageResult
from idea_forge.infrastructure.cache import DOCUMENTATION_CACHE_KEY
from idea_forge.infrastructure.llm import LLMError
from idea_forge.presentation.export import (
    SECTION_TITLES,
    IdeaSection,
    export_markdown,
    render_markdown_report,
    template_section,
)
from idea_forge.services.recovery import strip_code_fences
from idea_forge.services.stages import Stage, StageContext

logger = logging.getLogger(__name__)

DOCUMENTATION_SYSTEM_PROMPT = """\
You are a business analyst writing an investment memo section for one business idea.
Write GitHub-flavoured markdown with exactly these level-3 headings, in order:
{headings}
Use the scores, competitor analysis and critical analysis you are given. Do not add a
title; output only the markdown.
{mode_context}
"""


def report_path_for(docs_dir: str | Path, run_id: str) -> Path:
    return Path(docs_dir) / f"business-ideas-{run_id}.md"


class DocumentationStage(Stage):
    """Writes the run report and records its path on every idea."""

    name = StageName.DOCUMENTATION
    label = "documentation"
    cache_key = DOCUMENTATION_CACHE_KEY
    persist_as = IdeaStage.DOCUMENTED

    def start_message(self, total: int, context: StageContext) -> str:
        return f"📝 Documenting {total} ideas"

    def progress_message(self, index: int, total: int, idea: Idea) -> str:
        return f"📄 Documented idea {index + 1}/{total}: {idea.title}"

    def result_data(self, output: StageOutput) -> dict[str, Any]:
        report = output.report
        if report is None:
            return super().result_data(output)
        return {
            "reportPath": report.report_path,
            "processingTime": report.processing_time,
            "ideasProcessed": report.ideas_processed,
        }

    async def write_section(self, idea: Idea, context: StageContext) -> str:
        system = DOCUMENTATION_SYSTEM_PROMPT.format(
            headings="\n".join(f"### {title}" for title in SECTION_TITLES),
            mode_context=context.mode.documentation_context([idea]),
        )
        user = json.dumps(idea.to_wire(), indent=2, ensure_ascii=False)
        text = strip_code_fences(await self.producer.complete(system, user))
        return text or template_section(idea)

    async def execute(
        self, ideas: Sequence[Idea], context: StageContext
    ) -> AsyncIterator[StageMessage]:
        started = time.perf_counter()
        total = len(ideas)
        yield self.start_event(total, context)

        sections: list[IdeaSection] = []
        for index, idea in enumerate(ideas):
            try:
                body = await self.write_section(idea, context)
            except LLMError as exc:
                logger.warning("Documentation failed for %s: %s", idea.id, exc)
                yield self.error_event(idea, exc, transient=True)
                body = template_section(idea)
            except Exception as exc:
                logger.exception("Unexpected documentation failure for %s", idea.id)
                yield self.error_event(idea, exc, transient=False)
                body = template_section(idea)
            sections.append(IdeaSection(idea, body))
            yield self.progress_event(index, total, idea, context)

        text = render_markdown_report(context.run, context.mode.profile, sections)
        path = export_markdown(text, report_path_for(context.config.docs_dir, context.run.id))
        logger.info("Report for run %s written to %s", context.run.id, path)

        documented = [idea.model_copy(update={"document_path": str(path)}) for idea in ideas]
        report = DocumentationReport(
            report_path=str(path),
            processing_time=int((time.perf_counter() - started) * 1000),
            ideas_processed=total,
        )
        output = StageOutput(ideas=documented, report=report)
        for event in self.complete_events(output):
            yield event
        yield StageResult(output)
