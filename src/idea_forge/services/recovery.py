"""Recovery of malformed JSON returned by non-streaming producer calls.

:class:`JSONRecoveryEngine` walks an escalation ladder, from cheap to
aggressive, and stops at the first step that yields a JSON object:

1. strip code fences,
2. parse directly,
3. cut to the first ``{`` and drop trailing commas,
4. close an unterminated string,
5. drop a dangling ``,`` or ``key:`` at the tail,
6. close unbalanced brackets then braces,
7. parse the repaired text,
8. pull individual fields out with regular expressions,
9. fall back to a fixed default record.

Every step is logged.  Recovery never raises for bad input: the returned
:class:`RecoveryResult` always carries a record with every required field.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from idea_forge.domain.exceptions import RecoveryError

logger = logging.getLogger(__name__)

_FENCE_OPEN_RE = re.compile(r"^\s*```[a-zA-Z]*\s*")
_FENCE_CLOSE_RE = re.compile(r"\s*```\s*$")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_DANGLING_KEY_RE = re.compile(r',?\s*"(?:[^"\\]|\\.)*"\s*:\s*$')


class RecoveryStep(str, Enum):
    """Ladder step that produced the returned record."""

    DIRECT = "direct"
    TRAILING_COMMAS = "trailing_commas"
    CLOSED_QUOTE = "closed_quote"
    TRIMMED_TAIL = "trimmed_tail"
    BALANCED = "balanced"
    FIELD_EXTRACTION = "field_extraction"
    DEFAULT = "default"


class FieldKind(str, Enum):
    STRING = "string"
    NUMBER = "number"


@dataclass(frozen=True)
class RecoveryResult:
    """Outcome of a recovery attempt.

    Attributes
    ----------
    record:
        The recovered fields layered over the engine's default record, so
        every required field is present.
    recovered:
        Only the fields actually recovered from the text.
    step:
        Ladder step that succeeded.
    attempts:
        Steps tried, in order, including the successful one.
    """

    record: dict[str, Any]
    recovered: dict[str, Any]
    step: RecoveryStep
    attempts: tuple[RecoveryStep, ...] = ()

    @property
    def degraded(self) -> bool:
        return self.step in (RecoveryStep.FIELD_EXTRACTION, RecoveryStep.DEFAULT)


# ---------------------------------------------------------------------------
# Repair primitives
# ---------------------------------------------------------------------------

def strip_code_fences(text: str) -> str:
    """Remove a leading ````json`` marker and a trailing fence."""
    stripped = text.strip()
    if "```" not in stripped:
        return stripped
    if not stripped.startswith("```"):
        # Prose before the fence; keep only the fenced body.
        stripped = stripped[stripped.index("```"):]
    stripped = _FENCE_OPEN_RE.sub("", stripped, count=1)
    if "```" in stripped:
        stripped = stripped[:stripped.index("```")]
    return _FENCE_CLOSE_RE.sub("", stripped).strip()


def strip_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def count_unescaped_quotes(text: str) -> int:
    count = 0
    escaped = False
    for char in text:
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            count += 1
    return count


def trim_dangling_tail(text: str) -> str:
    """Drop a trailing ``,`` or a key whose value never arrived."""
    stripped = text.rstrip()
    if stripped.endswith(":"):
        return _DANGLING_KEY_RE.sub("", stripped)
    if stripped.endswith(","):
        return stripped[:-1]
    return stripped


def close_open_structures(text: str) -> str:
    """Append the ``]`` and then ``}`` needed to balance *text*."""
    open_braces = 0
    open_brackets = 0
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            open_braces += 1
        elif char == "}":
            open_braces -= 1
        elif char == "[":
            open_brackets += 1
        elif char == "]":
            open_brackets -= 1
    return text + "]" * max(open_brackets, 0) + "}" * max(open_braces, 0)


def _parse_object(text: str) -> dict[str, Any] | None:
    try:
        value = json.loads(text, strict=False)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

@dataclass
class JSONRecoveryEngine:
    """Best-effort parser for one producer response.

    Parameters
    ----------
    fields:
        Required fields and their kind, used by regex field extraction.
    default:
        Fixed record returned when nothing can be recovered.  Must contain
        every key in *fields*.
    name:
        Label used in log records.
    """

    fields: Mapping[str, FieldKind]
    default: Mapping[str, Any]
    name: str = "recovery"
    _patterns: dict[str, re.Pattern[str]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        missing = set(self.fields) - set(self.default)
        if missing:
            raise RecoveryError(
                f"Default record for {self.name!r} lacks required fields",
                details={"missing": sorted(missing)},
            )
        self._patterns = {
            key: re.compile(self._pattern_for(key, kind), re.DOTALL)
            for key, kind in self.fields.items()
        }

    @staticmethod
    def _pattern_for(key: str, kind: FieldKind) -> str:
        quoted = re.escape(f'"{key}"')
        if kind is FieldKind.NUMBER:
            return quoted + r"\s*:\s*(-?\d+(?:\.\d+)?)"
        return quoted + r'\s*:\s*"((?:[^"\\]|\\.)*)"?'

    def recover(self, text: str) -> RecoveryResult:
        attempts: list[RecoveryStep] = []

        def done(step: RecoveryStep, recovered: dict[str, Any]) -> RecoveryResult:
            attempts.append(step)
            record = {**self.default, **recovered}
            return RecoveryResult(record, recovered, step, tuple(attempts))

        cleaned = strip_code_fences(text or "")
        parsed = _parse_object(cleaned)
        if parsed is not None:
            return done(RecoveryStep.DIRECT, parsed)
        attempts.append(RecoveryStep.DIRECT)
        logger.debug("[%s] direct parse failed", self.name)

        start = cleaned.find("{")
        if start != -1:
            repaired = strip_trailing_commas(cleaned[start:])
            ladder = (
                (RecoveryStep.TRAILING_COMMAS, lambda s: s),
                (
                    RecoveryStep.CLOSED_QUOTE,
                    lambda s: s + '"' if count_unescaped_quotes(s) % 2 else s,
                ),
                (RecoveryStep.TRIMMED_TAIL, trim_dangling_tail),
                (
                    RecoveryStep.BALANCED,
                    lambda s: strip_trailing_commas(close_open_structures(s)),
                ),
            )
            for step, repair in ladder:
                repaired = repair(repaired)
                parsed = _parse_object(repaired)
                if parsed is not None:
                    logger.info("[%s] recovered JSON via %s", self.name, step.value)
                    return done(step, parsed)
                attempts.append(step)
                logger.debug("[%s] repair step %s did not yield JSON", self.name, step.value)
        else:
            logger.debug("[%s] no object start found; skipping structural repair", self.name)

        extracted = self.extract_fields(cleaned)
        if extracted:
            logger.warning(
                "[%s] fell back to field extraction (%d/%d fields)",
                self.name, len(extracted), len(self.fields),
            )
            return done(RecoveryStep.FIELD_EXTRACTION, extracted)

        logger.warning("[%s] nothing recoverable; using default record", self.name)
        return done(RecoveryStep.DEFAULT, {})

    def extract_fields(self, text: str) -> dict[str, Any]:
        """Pull the configured fields out of *text* one by one."""
        found: dict[str, Any] = {}
        for key, pattern in self._patterns.items():
            match = pattern.search(text)
            if match is None:
                continue
            raw = match.group(1)
            if self.fields[key] is FieldKind.NUMBER:
                found[key] = float(raw)
            else:
                try:
                    found[key] = json.loads(f'"{raw}"', strict=False)
                except json.JSONDecodeError:
                    found[key] = raw
        return found
