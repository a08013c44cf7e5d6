"""Solopreneur mode: technically deep products one builder can run with AI."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

import numpy as np

from idea_forge.domain.entities import BusinessPreferences, Idea
from idea_forge.modes.base import ExecutionMode, KeywordRule, ModeProfile

HIGH_LEVERAGE_KEYWORDS = (
    "api", "integration", "dashboard", "analytics", "automation", "workflow", "saas",
)
LOW_LEVERAGE_KEYWORDS = (
    "hardware", "embedded", "real-time", "low-level", "kernel", "driver",
)


def estimate_ai_leverage(idea: Idea) -> float:
    """How much of the build an AI coding assistant can shoulder, in ``[3, 9]``."""
    text = f"{idea.title} {idea.description}".lower()
    score = 5.0
    score += 0.5 * sum(k in text for k in HIGH_LEVERAGE_KEYWORDS)
    score -= 0.5 * sum(k in text for k in LOW_LEVERAGE_KEYWORDS)
    return float(np.clip(score, 3.0, 9.0))


def complexity_sweet_spot(technical_complexity: int) -> float:
    """Reward complexity high enough to be a moat but still buildable alone."""
    if 6 <= technical_complexity <= 8:
        return 9.0
    if 5 <= technical_complexity <= 9:
        return 7.0
    if technical_complexity < 5:
        return 4.0
    return 3.0


class SolopreneurMode(ExecutionMode):
    """One-person businesses whose moat is technical depth."""

    error_rules = (
        KeywordRule(
            ("micro-niche", "very small market"),
            "Market is too small to sustain even a one-person business",
        ),
        KeywordRule(
            ("no-code", "drag-and-drop", "simple"),
            "No technical moat: easily replicated with off-the-shelf tools",
        ),
    )
    warning_rules = (
        KeywordRule(
            ("technical", "algorithm", "ai", "ml", "complex"),
            "Technical differentiation is unclear",
            negate=True,
        ),
        KeywordRule(
            ("consulting", "custom", "enterprise sales"),
            "Service or sales-heavy model is hard to run alone",
        ),
        KeywordRule(
            ("plugin", "extension", "addon"),
            "Depends on a third-party platform that controls distribution",
        ),
    )

    @property
    def profile(self) -> ModeProfile:
        return ModeProfile(
            mode="solopreneur",
            display_name="Solopreneur",
            description="Technically sophisticated products a single founder can build and run",
            target_team_size="1-3",
            target_market_size="$1M-$50M",
            primary_focus=("technical moat", "AI leverage", "capital efficiency"),
        )

    def ideation_context(self, preferences: BusinessPreferences) -> str:
        return (
            "EXECUTION MODE: SOLOPRENEUR (one founder, AI-assisted)\n"
            "Focus on technically deep products that one person can build with AI coding "
            "assistants, sell self-serve, run with minimal capital and defend through "
            "technical complexity rather than sales or network effects.\n\n"
            "USER CONTEXT:\n"
            f"Vertical: {preferences.vertical}\n"
            f"Sub-vertical: {preferences.sub_vertical}\n"
            f"Business model: {preferences.business_model}\n"
            f"Additional context: {preferences.additional_context or 'None provided'}"
        )

    def competitor_context(self, idea: Idea) -> str:
        return (
            "EXECUTION MODE: SOLOPRENEUR COMPETITIVE ANALYSIS\n"
            "Look for indie products, open-source alternatives and incumbents' neglected "
            "niches. Raise the blue ocean score where incumbents cannot profitably follow; "
            "lower it where no-code tools already cover the use case."
        )

    def critic_context(self, idea: Idea) -> str:
        return (
            "EXECUTION MODE: SOLOPRENEUR EVALUATION\n"
            "Can one person build, sell and support this? Is the technical moat real? "
            "Does revenue start without a sales team? Use a negative risk adjustment for "
            "heavy support or compliance burden and a positive one for self-serve products "
            "with strong AI leverage."
        )

    def documentation_context(self, ideas: Sequence[Idea]) -> str:
        return (
            "Write for a solo technical founder: emphasize build plan, AI leverage, "
            "self-serve distribution and time to first revenue."
        )

    def scoring_weights(self) -> Mapping[str, float]:
        return {
            "technical_moat": 0.25,
            "market": 0.20,
            "ai_leverage": 0.20,
            "complexity": 0.15,
            "capital_efficiency": 0.10,
            "blue_ocean": 0.10,
        }

    def dimension_scores(self, idea: Idea) -> Mapping[str, float]:
        blue_ocean = idea.blue_ocean_score
        return {
            "technical_moat": idea.technical_complexity,
            "market": idea.market_potential,
            "ai_leverage": estimate_ai_leverage(idea),
            "complexity": complexity_sweet_spot(idea.technical_complexity),
            "capital_efficiency": 10 - idea.capital_intensity,
            "blue_ocean": 5.0 if blue_ocean is None else blue_ocean,
        }
