"""Execution modes: prompt context, scoring weights and validation rules."""

from idea_forge.modes.base import ExecutionMode, KeywordRule, ModeProfile, ValidationResult
from idea_forge.modes.classic_startup import ClassicStartupMode
from idea_forge.modes.solopreneur import SolopreneurMode

__all__ = [
    "ClassicStartupMode",
    "ExecutionMode",
    "KeywordRule",
    "ModeProfile",
    "SolopreneurMode",
    "ValidationResult",
]
