"""Serialization utilities for idea-forge.

Round-trip conversion between domain objects and their JSON wire form.
Entities are pydantic models, so conversion goes through ``model_dump`` /
``model_validate`` with camelCase aliases; this module keeps the calls (and
the alias / exclusion conventions) in one place.

- Every ``*_to_dict`` output is JSON-serializable.
- ``*_from_dict`` reconstructors raise ``ValueError`` for unrecoverable data
  (pydantic's ``ValidationError`` is a ``ValueError`` subclass).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from pydantic import TypeAdapter

from idea_forge.domain.entities import Idea, Run, StageOutput
from idea_forge.domain.events import WorkflowEvent

logger = logging.getLogger(__name__)

_IDEA_LIST = TypeAdapter(list[Idea])


# --------------------------------------------------------------------------- #
#  Ideas                                                                       #
# --------------------------------------------------------------------------- #

def idea_to_dict(idea: Idea) -> dict[str, Any]:
    return idea.to_wire()


def idea_from_dict(data: dict[str, Any]) -> Idea:
    return Idea.model_validate(data)


def ideas_to_list(ideas: Sequence[Idea]) -> list[dict[str, Any]]:
    return [idea.to_wire() for idea in ideas]


def ideas_from_list(data: list[dict[str, Any]]) -> list[Idea]:
    return _IDEA_LIST.validate_python(data)


# --------------------------------------------------------------------------- #
#  Stage outputs and runs                                                      #
# --------------------------------------------------------------------------- #

def stage_output_to_dict(output: StageOutput) -> dict[str, Any]:
    return output.model_dump(mode="json", by_alias=True, exclude_none=True)


def stage_output_from_dict(data: dict[str, Any]) -> StageOutput:
    if isinstance(data, list):
        # Bare idea lists are accepted for hand-written cache artifacts.
        return StageOutput(ideas=ideas_from_list(data))
    return StageOutput.model_validate(data)


def run_to_dict(run: Run) -> dict[str, Any]:
    return run.model_dump(mode="json", by_alias=True, exclude_none=True)


def run_from_dict(data: dict[str, Any]) -> Run:
    return Run.model_validate(data)


# --------------------------------------------------------------------------- #
#  Events                                                                      #
# --------------------------------------------------------------------------- #

def event_to_dict(event: WorkflowEvent) -> dict[str, Any]:
    return event.to_dict()


def event_from_dict(data: dict[str, Any]) -> WorkflowEvent:
    return WorkflowEvent.from_dict(data)


# --------------------------------------------------------------------------- #
#  JSON                                                                        #
# --------------------------------------------------------------------------- #

def to_json(obj: Any, *, indent: int | None = 2) -> str:
    """Serialize an entity, stage output, event or list of ideas to JSON."""
    if isinstance(obj, StageOutput):
        data: Any = stage_output_to_dict(obj)
    elif isinstance(obj, Run):
        data = run_to_dict(obj)
    elif isinstance(obj, Idea):
        data = idea_to_dict(obj)
    elif isinstance(obj, WorkflowEvent):
        data = event_to_dict(obj)
    elif isinstance(obj, (list, tuple)) and all(isinstance(i, Idea) for i in obj):
        data = ideas_to_list(obj)
    else:
        data = obj
    return json.dumps(data, indent=indent, ensure_ascii=False, default=str)
