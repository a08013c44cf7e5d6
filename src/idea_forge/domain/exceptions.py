"""Domain exceptions for idea-forge.

All domain-specific exceptions inherit from ``IdeaForgeError`` so callers can
catch the full family with a single ``except`` clause when needed.  Producer
(LLM) failures live in :mod:`idea_forge.infrastructure.llm` and are rooted at
``LLMError``.
"""

from __future__ import annotations

from typing import Any


class IdeaForgeError(Exception):
    """Base exception for all idea-forge domain errors."""

    def __init__(self, message: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = details or {}


class ConfigurationError(IdeaForgeError):
    """Raised when the process cannot start, e.g. no producer credentials."""

    def __init__(
        self,
        message: str = "Invalid configuration",
        setting: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.setting = setting


class RecoveryError(IdeaForgeError):
    """Raised when a recovery engine is misconfigured.

    Unparseable producer output never raises; it degrades to the engine's
    default record instead.
    """


class StageError(IdeaForgeError):
    """Raised when a stage violates its own contract (e.g. no final result)."""

    def __init__(
        self,
        message: str = "Stage failed",
        stage: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.stage = stage


class PipelineError(IdeaForgeError):
    """Raised when a pipeline run terminates in the ``Error`` state."""

    def __init__(
        self,
        message: str = "Pipeline run failed",
        run_id: str = "",
        phase: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.run_id = run_id
        self.phase = phase


class PersistenceError(IdeaForgeError):
    """Raised by repositories; the pipeline logs it and carries on."""

    def __init__(
        self,
        message: str = "Persistence operation failed",
        entity_id: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.entity_id = entity_id


class CacheError(IdeaForgeError):
    """Raised when a cache artifact exists but cannot be read or decoded."""

    def __init__(
        self,
        message: str = "Cache artifact unreadable",
        key: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.key = key
