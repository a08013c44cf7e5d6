"""Competitor-analysis stage: landscape analysis and blue-ocean scoring."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from idea_forge.domain.entities import Idea
from idea_forge.domain.enums import IdeaStage, StageName
from idea_forge.infrastructure.cache import COMPETITOR_CACHE_KEY
from idea_forge.services.recovery import FieldKind, JSONRecoveryEngine
from idea_forge.services.stages import PerIdeaStage, StageContext

logger = logging.getLogger(__name__)

FAILED_ANALYSIS = "Unable to perform competitor analysis due to technical issues."
FAILED_REASONING = "Default score assigned due to analysis failure."
UNAVAILABLE_ANALYSIS = "Competitor analysis not available."
UNAVAILABLE_REASONING = "Blue ocean analysis not available."
NEUTRAL_BLUE_OCEAN = 5.0

# Blue ocean = 0.4 competitor + 0.3 saturation + 0.3 innovation
BLUE_OCEAN_WEIGHTS = {"competitorScore": 0.4, "saturationScore": 0.3, "innovationScore": 0.3}

COMPETITOR_RECOVERY = JSONRecoveryEngine(
    fields={
        "competitorAnalysis": FieldKind.STRING,
        "blueOceanScore": FieldKind.NUMBER,
        "blueOceanReasoning": FieldKind.STRING,
    },
    default={
        "competitorAnalysis": UNAVAILABLE_ANALYSIS,
        "blueOceanScore": NEUTRAL_BLUE_OCEAN,
        "blueOceanReasoning": UNAVAILABLE_REASONING,
    },
    name="competitor",
)

COMPETITOR_SYSTEM_PROMPT = """\
You are a market research analyst. Analyse the competitive landscape of the business
idea you are given: direct competitors, indirect alternatives, market saturation and
room for innovation.

Output ONLY a JSON object:
{{
  "competitorAnalysis": "detailed analysis",
  "blueOceanDetails": {{
    "competitorScore": 1-10 (10 = no meaningful competitors),
    "saturationScore": 1-10 (10 = unsaturated market),
    "innovationScore": 1-10 (10 = entirely new value curve)
  }},
  "blueOceanScore": 0.4 * competitorScore + 0.3 * saturationScore + 0.3 * innovationScore,
  "blueOceanReasoning": "one paragraph explaining the score"
}}
{mode_context}
"""


def blue_ocean_from_details(details: Mapping[str, Any]) -> float | None:
    """Weighted blue-ocean score, or ``None`` if a component is missing."""
    try:
        return sum(float(details[k]) * w for k, w in BLUE_OCEAN_WEIGHTS.items())
    except (KeyError, TypeError, ValueError):
        return None


def clamp_blue_ocean(value: Any) -> float:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return NEUTRAL_BLUE_OCEAN
    return round(min(max(score, 1.0), 10.0), 1)


def blue_ocean_reasoning(record: Mapping[str, Any]) -> str:
    details = record.get("blueOceanDetails")
    reasoning = record.get("blueOceanReasoning")
    if isinstance(details, Mapping) and blue_ocean_from_details(details) is not None:
        summary = (
            f"Competitor score {details['competitorScore']}, "
            f"saturation score {details['saturationScore']}, "
            f"innovation score {details['innovationScore']}."
        )
        return f"{summary} {reasoning}" if isinstance(reasoning, str) and reasoning else summary
    if isinstance(reasoning, str) and reasoning.strip():
        return reasoning.strip()
    return UNAVAILABLE_REASONING


class CompetitorStage(PerIdeaStage):
    """Adds competitor analysis and a blue-ocean score to every idea."""

    name = StageName.COMPETITOR
    label = "competitor-analysis"
    cache_key = COMPETITOR_CACHE_KEY
    persist_as = IdeaStage.COMPETITOR

    def start_message(self, total: int, context: StageContext) -> str:
        return f"🔎 Analyzing competitors for {total} ideas"

    def progress_message(self, index: int, total: int, idea: Idea) -> str:
        return f"🎯 Competitor analysis {index + 1}/{total}: {idea.title}"

    def progress_data(self, idea: Idea, context: StageContext) -> dict[str, Any]:
        return {"blueOceanScore": idea.blue_ocean_score}

    async def process_idea(self, idea: Idea, context: StageContext) -> Idea:
        system = COMPETITOR_SYSTEM_PROMPT.format(
            mode_context=context.mode.competitor_context(idea)
        )
        user = json.dumps(idea.to_wire(), indent=2, ensure_ascii=False)
        text = await self.producer.complete(system, user)
        result = COMPETITOR_RECOVERY.recover(text)
        record = result.record

        score = result.recovered.get("blueOceanScore")
        details = record.get("blueOceanDetails")
        if score is None and isinstance(details, Mapping):
            score = blue_ocean_from_details(details)
        analysis = record.get("competitorAnalysis")
        updated = idea.model_copy(update={
            "competitor_analysis": analysis if isinstance(analysis, str) and analysis
            else UNAVAILABLE_ANALYSIS,
            "blue_ocean_score": clamp_blue_ocean(score),
        })
        return updated.with_reasoning(blue_ocean=blue_ocean_reasoning(record))

    def degrade(self, idea: Idea, context: StageContext) -> Idea:
        updated = idea.model_copy(update={
            "competitor_analysis": FAILED_ANALYSIS,
            "blue_ocean_score": NEUTRAL_BLUE_OCEAN,
        })
        return updated.with_reasoning(blue_ocean=FAILED_REASONING)
