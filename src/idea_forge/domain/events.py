"""Workflow events and stage messages.

``WorkflowEvent`` is the observation unit distributed to remote observers.
Events are frozen dataclasses: once emitted (and placed in the ring buffer)
they are never mutated.

``StageEvent`` and ``StageResult`` are the two message kinds a stage yields to
the orchestrator.  A stage yields any number of ``StageEvent`` messages and
exactly one ``StageResult``, which is always the last message.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Union

from idea_forge.domain.entities import StageOutput
from idea_forge.domain.enums import EventLevel, EventType
from idea_forge.domain.identifiers import new_ulid


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _freeze(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


# ---------------------------------------------------------------------------
# Workflow event
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WorkflowEvent:
    """An observation emitted by a pipeline component.

    Attributes
    ----------
    type:
        Coarse classification (status / progress / result / error / log).
    stage:
        Name of the emitting component, e.g. ``"CriticAgent"``.
    metadata:
        Free-form payload.  Conventional keys are ``progress`` (percent),
        ``stage`` (sub-stage label) and ``data``.
    """

    type: EventType
    stage: str
    message: str
    level: EventLevel = EventLevel.INFO
    metadata: Mapping[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=new_ulid)
    timestamp: str = field(default_factory=_utc_now_iso)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", _freeze(self.metadata))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.type.value,
            "stage": self.stage,
            "level": self.level.value,
            "message": self.message,
            "metadata": dict(self.metadata),
        }

    def to_message(self) -> str:
        """Serialize into the ``{"type": "workflow", "data": ...}`` envelope."""
        return json.dumps({"type": "workflow", "data": self.to_dict()}, default=str)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WorkflowEvent:
        kwargs: dict[str, Any] = {
            "type": EventType(data["type"]),
            "stage": data.get("stage") or data.get("agentName", ""),
            "message": data.get("message", ""),
            "level": EventLevel(data.get("level", "info")),
            "metadata": data.get("metadata") or {},
        }
        if "id" in data:
            kwargs["id"] = data["id"]
        if "timestamp" in data:
            kwargs["timestamp"] = data["timestamp"]
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Stage channel messages
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StageEvent:
    """An event a stage wants published; the orchestrator stamps the stage name."""

    type: EventType
    message: str
    level: EventLevel = EventLevel.INFO
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", _freeze(self.metadata))


@dataclass(frozen=True)
class StageResult:
    """Distinguished final message carrying a stage's output."""

    output: StageOutput


StageMessage = Union[StageEvent, StageResult]
