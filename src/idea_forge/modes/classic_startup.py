"""Classic startup mode: venture-scalable ideas for funded teams."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from idea_forge.domain.entities import BusinessPreferences, Idea
from idea_forge.modes.base import ExecutionMode, KeywordRule, ModeProfile

NEUTRAL_BLUE_OCEAN = 5.0


class ClassicStartupMode(ExecutionMode):
    """Venture-style evaluation: big markets, disruption, defensibility."""

    error_rules = (
        KeywordRule(
            ("lifestyle business", "small business"),
            "Idea is framed as a lifestyle or small business, not a venture-scale startup",
        ),
    )
    warning_rules = (
        KeywordRule(("local", "regional"), "Market may be geographically limited"),
        KeywordRule(("consulting", "agency"), "Service-heavy model may not scale"),
        KeywordRule(
            ("technology", "platform", "software", "ai"),
            "No clear technology angle",
            negate=True,
        ),
    )

    @property
    def profile(self) -> ModeProfile:
        return ModeProfile(
            mode="classic-startup",
            display_name="Classic Startup",
            description="Venture-scalable businesses with large markets and strong moats",
            target_team_size="10-50+",
            target_market_size="$1B+ TAM",
            primary_focus=("disruption", "market size", "scalability", "defensibility"),
        )

    def ideation_context(self, preferences: BusinessPreferences) -> str:
        return (
            "EXECUTION MODE: CLASSIC STARTUP (venture-scalable businesses)\n"
            "Focus on ideas that can reach $100M+ ARR, benefit from network effects or "
            "economies of scale, are defensible through technology, data or network, and "
            "follow a venture-fundable growth trajectory.\n\n"
            "USER CONTEXT:\n"
            f"Vertical: {preferences.vertical}\n"
            f"Sub-vertical: {preferences.sub_vertical}\n"
            f"Business model: {preferences.business_model}\n"
            f"Additional context: {preferences.additional_context or 'None provided'}"
        )

    def competitor_context(self, idea: Idea) -> str:
        return (
            "EXECUTION MODE: CLASSIC STARTUP COMPETITIVE ANALYSIS\n"
            "Identify 3-5 direct competitors with their funding and market share, indirect "
            "alternatives, market dynamics and barriers to entry. Raise the blue ocean score "
            "for large untapped markets and platform plays; lower it when well-funded "
            "startups already crowd the space."
        )

    def critic_context(self, idea: Idea) -> str:
        return (
            "EXECUTION MODE: CLASSIC STARTUP EVALUATION\n"
            "Evaluate as a venture capital analyst: is the TAM really $1B+, is this a "
            "painkiller or a vitamin, do unit economics work, why will it win against "
            "incumbents, and can it reach $100M ARR? Use a negative risk adjustment for a "
            "small TAM or missing moat and a positive one for strong network effects."
        )

    def documentation_context(self, ideas: Sequence[Idea]) -> str:
        return (
            "Write for venture investors: emphasize market size, growth trajectory, "
            "competitive moat and funding needs."
        )

    def scoring_weights(self) -> Mapping[str, float]:
        return {
            "disruption": 0.20,
            "market": 0.25,
            "technical_feasibility": 0.15,
            "capital_efficiency": 0.15,
            "blue_ocean": 0.25,
        }

    def dimension_scores(self, idea: Idea) -> Mapping[str, float]:
        blue_ocean = idea.blue_ocean_score
        return {
            "disruption": idea.disruption_potential,
            "market": idea.market_potential,
            "technical_feasibility": 10 - idea.technical_complexity,
            "capital_efficiency": 10 - idea.capital_intensity,
            "blue_ocean": NEUTRAL_BLUE_OCEAN if blue_ocean is None else blue_ocean,
        }
