"""Incremental extraction of structured objects from streamed producer text.

The producer streams a JSON document such as ``{"ideas": [{...}, {...}]}``
in arbitrarily sized fragments.  :func:`extract_objects` scans the text
accumulated so far, returns every *complete* top-level object found after the
first ``[`` together with the unconsumed remainder, and never re-emits an
object it has already returned: the remainder is fed back, concatenated with
the next fragment, on the following call.

Only object boundaries are located here.  Each delimited candidate is parsed
with :func:`json.loads` and handed to a validator; a candidate that fails
either step is rejected and skipped so that it never blocks the objects behind
it.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

ARRAY_START = "["

Validator = Callable[[Any], T]


@dataclass(frozen=True)
class Candidate(Generic[T]):
    """One brace-delimited object found in the buffer.

    ``value`` is set when the candidate parsed and validated; otherwise
    ``error`` describes why it was rejected.
    """

    text: str
    value: T | None = None
    error: str | None = None

    @property
    def accepted(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ExtractionResult(Generic[T]):
    """Outcome of one scan over a buffer."""

    candidates: list[Candidate[T]]
    remainder: str

    @property
    def objects(self) -> list[T]:
        return [c.value for c in self.candidates if c.accepted]  # type: ignore[misc]

    @property
    def rejected(self) -> list[Candidate[T]]:
        return [c for c in self.candidates if not c.accepted]


def model_validator(model: type[BaseModel]) -> Validator[Any]:
    """Build a validator that turns a parsed mapping into *model*."""
    return model.model_validate


def find_object_end(text: str, start: int) -> int:
    """Return the index of the ``}`` closing the object opened at *start*.

    Braces inside string literals are ignored; a backslash escapes the next
    character inside a string.  Returns ``-1`` if the text ends first.
    """
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
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
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return -1


def _evaluate(text: str, validate: Validator[T]) -> Candidate[T]:
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        return Candidate(text=text, error=f"invalid JSON: {exc.msg}")
    try:
        return Candidate(text=text, value=validate(raw))
    except (ValidationError, ValueError, TypeError) as exc:
        return Candidate(text=text, error=f"schema violation: {exc}")


def extract_objects(buffer: str, validate: Validator[T]) -> ExtractionResult[T]:
    """Scan *buffer* for complete objects following the first ``[``.

    Parameters
    ----------
    buffer:
        Remainder of the previous call concatenated with newly streamed text.
    validate:
        Callable turning a parsed JSON value into a domain object; it signals
        a schema violation by raising ``ValidationError``, ``ValueError`` or
        ``TypeError``.

    Returns
    -------
    ExtractionResult
        Every candidate delimited in this call, in buffer order, and the
        remainder to prepend to the next fragment.  If no ``[`` has arrived
        yet the buffer is returned unchanged.
    """
    anchor = buffer.find(ARRAY_START)
    if anchor == -1:
        return ExtractionResult(candidates=[], remainder=buffer)

    work = buffer[anchor + 1:]
    cursor = 0
    candidates: list[Candidate[T]] = []
    while True:
        start = work.find("{", cursor)
        if start == -1:
            break
        end = find_object_end(work, start)
        if end == -1:
            break
        candidate = _evaluate(work[start:end + 1], validate)
        if not candidate.accepted:
            logger.debug("Discarding extracted object: %s", candidate.error)
        candidates.append(candidate)
        cursor = end + 1

    return ExtractionResult(candidates=candidates, remainder=ARRAY_START + work[cursor:])


@dataclass
class IncrementalExtractor(Generic[T]):
    """Stateful wrapper around :func:`extract_objects` for one stream.

    Feed fragments as they arrive; every call returns the candidates newly
    delimited by that fragment.  Accepted objects and rejected candidates
    are also accumulated for the whole stream.
    """

    validate: Validator[T]
    buffer: str = ""
    objects: list[T] = field(default_factory=list)
    rejected: list[Candidate[T]] = field(default_factory=list)

    def feed(self, fragment: str) -> list[Candidate[T]]:
        result = extract_objects(self.buffer + fragment, self.validate)
        self.buffer = result.remainder
        self.objects.extend(result.objects)
        self.rejected.extend(result.rejected)
        return result.candidates

    @property
    def dropped_count(self) -> int:
        return len(self.rejected)

    def unterminated_tail(self) -> str | None:
        """Text of a trailing object that never closed, if the stream was cut."""
        start = self.buffer.find("{")
        if start == -1:
            return None
        return self.buffer[start:]
