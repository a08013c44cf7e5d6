"""Tests for the critique stage."""

from __future__ import annotations

import json

import pytest

from idea_forge.domain.enums import EventType
from idea_forge.domain.events import StageResult
from idea_forge.services.critic import (
    FAILED_ANALYSIS,
    FAILED_REASONING,
    NEUTRAL_OVERALL,
    CriticStage,
    risk_adjustment,
)
from idea_forge.services.stages import StageContext


async def _run(stage, ideas, context):
    events, output = [], None
    async for message in stage.run(ideas, context):
        if isinstance(message, StageResult):
            output = message.output
        else:
            events.append(message)
    return events, output


def _critique(adjustment: float) -> str:
    return json.dumps({
        "criticalAnalysis": "Regulatory exposure is significant.",
        "riskAdjustment": adjustment,
        "overallReasoning": "Strong demand offsets the risk.",
    })


class TestCriticStage:

    @pytest.mark.asyncio
    async def test_overall_score_from_mode(self, context, scripted, make_idea) -> None:
        idea = make_idea(blue_ocean_score=6.0)
        events, output = await _run(CriticStage(scripted(_critique(1.0))), [idea], context)
        result = output.ideas[0]
        # 0.20*8 + 0.25*7 + 0.15*6 + 0.15*7 + 0.25*6 = 6.8, plus 1.0 risk
        assert result.overall_score == 7.8
        assert result.critical_analysis.startswith("Regulatory")
        assert result.reasoning.overall == "Strong demand offsets the risk."
        assert result.blue_ocean_score == 6.0
        progress = events[1].metadata["data"]
        assert progress["overallScore"] == 7.8
        assert progress["validation"]["isValid"] is True

    @pytest.mark.asyncio
    async def test_score_depends_on_mode(self, context, solo_mode, scripted, make_idea) -> None:
        idea = make_idea(blue_ocean_score=6.0)
        solo = StageContext(run=context.run, mode=solo_mode, config=context.config)
        _, classic_out = await _run(CriticStage(scripted(_critique(0))), [idea], context)
        _, solo_out = await _run(CriticStage(scripted(_critique(0))), [idea], solo)
        assert classic_out.ideas[0].overall_score != solo_out.ideas[0].overall_score

    @pytest.mark.asyncio
    async def test_score_clamped_to_range(self, context, scripted, make_idea) -> None:
        idea = make_idea(
            disruption_potential=10, market_potential=10,
            technical_complexity=1, capital_intensity=1, blue_ocean_score=10.0,
        )
        _, output = await _run(CriticStage(scripted(_critique(2))), [idea], context)
        assert output.ideas[0].overall_score == 10.0

    @pytest.mark.asyncio
    async def test_producer_failure_defaults(self, context, scripted, make_idea) -> None:
        idea = make_idea()
        events, output = await _run(CriticStage(scripted(RuntimeError("boom"))), [idea], context)
        result = output.ideas[0]
        assert result.id == idea.id
        assert result.critical_analysis == FAILED_ANALYSIS
        assert result.overall_score == NEUTRAL_OVERALL
        assert result.reasoning.overall == FAILED_REASONING
        assert EventType.ERROR in [e.type for e in events]

    @pytest.mark.asyncio
    async def test_truncated_response_recovered(self, context, scripted, make_idea) -> None:
        text = '{"criticalAnalysis": "Crowded space", "riskAdjustment": -1, "overallReas'
        _, output = await _run(CriticStage(scripted(text)), [make_idea()], context)
        result = output.ideas[0]
        assert result.critical_analysis == "Crowded space"
        assert result.overall_score is not None


class TestRiskAdjustment:

    def test_clamped(self) -> None:
        assert risk_adjustment(5) == 2.0
        assert risk_adjustment(-3.5) == -2.0
        assert risk_adjustment("0.5") == 0.5
        assert risk_adjustment("bad") == 0.0
