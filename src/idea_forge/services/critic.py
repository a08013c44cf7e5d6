"""Critique stage: critical evaluation and the overall score.

The producer supplies the critical analysis and a risk adjustment; the
overall score itself comes from the run's execution mode.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from idea_forge.domain.entities import Idea
from idea_forge.domain.enums import IdeaStage, StageName
from idea_forge.infrastructure.cache import CRITIC_CACHE_KEY
from idea_forge.services.recovery import FieldKind, JSONRecoveryEngine
from idea_forge.services.stages import PerIdeaStage, StageContext

logger = logging.getLogger(__name__)

FAILED_ANALYSIS = "Critical evaluation failed due to technical issues."
FAILED_REASONING = "Default score assigned due to evaluation failure."
UNAVAILABLE_ANALYSIS = "Critical analysis not available."
UNAVAILABLE_REASONING = "Overall score computed without producer reasoning."
NEUTRAL_OVERALL = 5.0
MAX_RISK_ADJUSTMENT = 2.0

CRITIC_RECOVERY = JSONRecoveryEngine(
    fields={
        "criticalAnalysis": FieldKind.STRING,
        "riskAdjustment": FieldKind.NUMBER,
        "overallReasoning": FieldKind.STRING,
    },
    default={
        "criticalAnalysis": UNAVAILABLE_ANALYSIS,
        "riskAdjustment": 0.0,
        "overallReasoning": UNAVAILABLE_REASONING,
    },
    name="critic",
)

CRITIC_SYSTEM_PROMPT = """\
You are a skeptical investment analyst. Evaluate the business idea you are given,
including its competitor analysis: risks, weaknesses, market timing, execution
difficulty and business model viability.

Output ONLY a JSON object:
{{
  "criticalAnalysis": "detailed critical evaluation",
  "riskAdjustment": number between -2 and 2 applied to the base score,
  "overallReasoning": "one paragraph explaining the final assessment"
}}
{mode_context}
"""


def risk_adjustment(value: Any) -> float:
    try:
        adjustment = float(value)
    except (TypeError, ValueError):
        return 0.0
    return min(max(adjustment, -MAX_RISK_ADJUSTMENT), MAX_RISK_ADJUSTMENT)


class CriticStage(PerIdeaStage):
    """Adds critical analysis and an overall score to every idea."""

    name = StageName.CRITIC
    label = "critic"
    cache_key = CRITIC_CACHE_KEY
    persist_as = IdeaStage.CRITIC

    def start_message(self, total: int, context: StageContext) -> str:
        return f"🧐 Critically evaluating {total} ideas"

    def progress_message(self, index: int, total: int, idea: Idea) -> str:
        return f"⚖️ Evaluated idea {index + 1}/{total}: {idea.title}"

    def progress_data(self, idea: Idea, context: StageContext) -> dict[str, Any]:
        return {
            "overallScore": idea.overall_score,
            "validation": context.mode.validate_idea(idea).to_dict(),
        }

    async def process_idea(self, idea: Idea, context: StageContext) -> Idea:
        validation = context.mode.validate_idea(idea)
        for error in validation.errors:
            logger.warning("Idea %s fails %s rules: %s", idea.id, context.mode.mode, error)
        for warning in validation.warnings:
            logger.info("Idea %s %s warning: %s", idea.id, context.mode.mode, warning)

        system = CRITIC_SYSTEM_PROMPT.format(mode_context=context.mode.critic_context(idea))
        user = json.dumps(idea.to_wire(), indent=2, ensure_ascii=False)
        text = await self.producer.complete(system, user)
        record = CRITIC_RECOVERY.recover(text).record

        score = context.mode.calculate_overall_score(
            idea, risk_adjustment(record.get("riskAdjustment"))
        )
        analysis = record.get("criticalAnalysis")
        reasoning = record.get("overallReasoning")
        updated = idea.model_copy(update={
            "critical_analysis": analysis if isinstance(analysis, str) and analysis
            else UNAVAILABLE_ANALYSIS,
            "overall_score": score,
        })
        return updated.with_reasoning(
            overall=reasoning if isinstance(reasoning, str) and reasoning
            else UNAVAILABLE_REASONING
        )

    def degrade(self, idea: Idea, context: StageContext) -> Idea:
        updated = idea.model_copy(update={
            "critical_analysis": FAILED_ANALYSIS,
            "overall_score": NEUTRAL_OVERALL,
        })
        return updated.with_reasoning(overall=FAILED_REASONING)
