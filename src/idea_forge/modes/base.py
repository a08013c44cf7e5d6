"""Execution-mode policy interface.

An execution mode is a named bundle of prompt context, scoring weights and
validation rules.  The orchestrator resolves exactly one mode per run and
threads it unchanged through all four stages.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

import numpy as np

from idea_forge.domain.entities import BusinessPreferences, Idea


@dataclass(frozen=True)
class ModeProfile:
    """Descriptive metadata for a mode."""

    mode: str
    display_name: str
    description: str
    target_team_size: str
    target_market_size: str
    primary_focus: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "mode": self.mode,
            "displayName": self.display_name,
            "description": self.description,
            "targetTeamSize": self.target_team_size,
            "targetMarketSize": self.target_market_size,
            "primaryFocus": list(self.primary_focus),
        }


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of checking an idea against a mode's rules."""

    errors: tuple[str, ...] = field(default_factory=tuple)
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, object]:
        return {
            "isValid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class KeywordRule:
    """Flags an idea whose description mentions any of *keywords*.

    With ``negate=True`` the rule fires when *none* of the keywords appear.
    """

    keywords: tuple[str, ...]
    message: str
    negate: bool = False

    def fires(self, text: str) -> bool:
        hit = any(k in text for k in self.keywords)
        return not hit if self.negate else hit


def clamp_score(value: float, low: float = 0.0, high: float = 10.0) -> float:
    """Clamp to ``[low, high]`` and round to one decimal."""
    return round(float(np.clip(value, low, high)), 1)


class ExecutionMode(ABC):
    """Base class for execution modes."""

    error_rules: Sequence[KeywordRule] = ()
    warning_rules: Sequence[KeywordRule] = ()

    @property
    @abstractmethod
    def profile(self) -> ModeProfile:
        ...

    @property
    def mode(self) -> str:
        return self.profile.mode

    # -- prompt context -------------------------------------------------------

    @abstractmethod
    def ideation_context(self, preferences: BusinessPreferences) -> str:
        ...

    @abstractmethod
    def competitor_context(self, idea: Idea) -> str:
        ...

    @abstractmethod
    def critic_context(self, idea: Idea) -> str:
        ...

    @abstractmethod
    def documentation_context(self, ideas: Sequence[Idea]) -> str:
        ...

    # -- scoring --------------------------------------------------------------

    @abstractmethod
    def scoring_weights(self) -> Mapping[str, float]:
        """Weights by dimension name; they sum to 1."""
        ...

    @abstractmethod
    def dimension_scores(self, idea: Idea) -> Mapping[str, float]:
        """Per-dimension scores in ``[0, 10]`` keyed like the weights."""
        ...

    def calculate_overall_score(self, idea: Idea, risk_adjustment: float = 0.0) -> float:
        """Weighted dimension average plus *risk_adjustment*, in ``[0, 10]``."""
        weights = self.scoring_weights()
        scores = self.dimension_scores(idea)
        names = list(weights)
        values = np.array([scores[name] for name in names], dtype=float)
        w = np.array([weights[name] for name in names], dtype=float)
        base = float(np.average(values, weights=w))
        return clamp_score(base + risk_adjustment)

    # -- validation -----------------------------------------------------------

    def validate_idea(self, idea: Idea) -> ValidationResult:
        text = idea.description.lower()
        errors = tuple(r.message for r in self.error_rules if r.fires(text))
        warnings = tuple(r.message for r in self.warning_rules if r.fires(text))
        return ValidationResult(errors=errors, warnings=warnings)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(mode={self.mode!r})"
