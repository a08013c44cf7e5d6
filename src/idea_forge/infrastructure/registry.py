"""Execution-mode registry for idea-forge.

Maps string tags (``"classic-startup"``, ``"solopreneur"``) to
:class:`~idea_forge.modes.base.ExecutionMode` instances.  Resolution never
fails: an unknown tag is normalized and then matched by substring
heuristics, falling back to the default mode.

Construct one registry per process with :func:`create_default_registry` and
pass it to the orchestrator; tests build their own.
"""

from __future__ import annotations

import logging
import re

from idea_forge.modes.base import ExecutionMode

logger = logging.getLogger(__name__)

DEFAULT_MODE = "classic-startup"

# (substring, mode) pairs tried in order against a normalized tag.
MODE_HEURISTICS: tuple[tuple[str, str], ...] = (
    ("solo", "solopreneur"),
    ("indie", "solopreneur"),
    ("bootstrap", "solopreneur"),
    ("startup", "classic-startup"),
    ("venture", "classic-startup"),
    ("classic", "classic-startup"),
)


def normalize_tag(tag: str) -> str:
    """Lower-case *tag* and collapse spaces / underscores into hyphens."""
    return re.sub(r"[\s_]+", "-", tag.strip().lower())


class ExecutionModeRegistry:
    """Registry of execution modes keyed by tag.

    Usage::

        registry = ExecutionModeRegistry()
        registry.register(SolopreneurMode())
        mode = registry.resolve("Solo founder")
    """

    def __init__(self, default_mode: str = DEFAULT_MODE) -> None:
        self._modes: dict[str, ExecutionMode] = {}
        self.default_mode = default_mode

    # ------------------------------------------------------------------ #
    #  Registration                                                       #
    # ------------------------------------------------------------------ #

    def register(self, mode: ExecutionMode, *, overwrite: bool = False) -> None:
        """Register *mode* under its own tag.

        Raises
        ------
        ValueError
            If the tag is already registered and ``overwrite`` is ``False``.
        """
        tag = mode.mode
        if tag in self._modes and not overwrite:
            raise ValueError(
                f"Execution mode {tag!r} is already registered. "
                f"Use overwrite=True to replace it."
            )
        if tag in self._modes:
            logger.debug("Overwriting execution mode %r", tag)
        self._modes[tag] = mode

    def unregister(self, tag: str) -> bool:
        return self._modes.pop(tag, None) is not None

    # ------------------------------------------------------------------ #
    #  Lookup                                                             #
    # ------------------------------------------------------------------ #

    def get(self, tag: str) -> ExecutionMode:
        """Return the mode registered under exactly *tag*.

        Raises
        ------
        KeyError
            If *tag* is not registered.
        """
        try:
            return self._modes[tag]
        except KeyError:
            available = ", ".join(sorted(self._modes)) or "(none)"
            raise KeyError(
                f"No execution mode registered as {tag!r}. Available: {available}"
            ) from None

    def get_or_none(self, tag: str) -> ExecutionMode | None:
        return self._modes.get(tag)

    def resolve(self, tag: str | None) -> ExecutionMode:
        """Best-effort lookup that never fails for a non-empty registry."""
        if not self._modes:
            raise KeyError("No execution modes registered")
        if tag:
            if tag in self._modes:
                return self._modes[tag]
            normalized = normalize_tag(tag)
            if normalized in self._modes:
                return self._modes[normalized]
            for needle, target in MODE_HEURISTICS:
                if needle in normalized and target in self._modes:
                    logger.warning("Unknown execution mode %r; mapped to %r", tag, target)
                    return self._modes[target]
        fallback = self._modes.get(self.default_mode) or next(iter(self._modes.values()))
        if tag:
            logger.warning("Unknown execution mode %r; using default %r", tag, fallback.mode)
        return fallback

    @property
    def supported_modes(self) -> list[str]:
        return sorted(self._modes)

    def has_mode(self, tag: str) -> bool:
        return tag in self._modes

    def modes(self) -> list[ExecutionMode]:
        return [self._modes[tag] for tag in self.supported_modes]

    def __contains__(self, tag: object) -> bool:
        return tag in self._modes

    def __len__(self) -> int:
        return len(self._modes)

    def __repr__(self) -> str:
        return f"ExecutionModeRegistry(modes={self.supported_modes})"


def create_default_registry() -> ExecutionModeRegistry:
    """Registry holding the built-in modes."""
    from idea_forge.modes import ClassicStartupMode, SolopreneurMode

    registry = ExecutionModeRegistry()
    registry.register(ClassicStartupMode())
    registry.register(SolopreneurMode())
    return registry
