"""Tests for workflow events and stage channel messages."""

from __future__ import annotations

import json

import pytest

from idea_forge.domain.enums import EventLevel, EventType
from idea_forge.domain.events import StageEvent, WorkflowEvent
from idea_forge.domain.identifiers import is_ulid


class TestWorkflowEvent:

    def test_stamped_with_id_and_timestamp(self) -> None:
        event = WorkflowEvent(EventType.STATUS, "IdeationAgent", "Starting")
        assert is_ulid(event.id)
        assert event.timestamp.endswith("Z")
        assert event.level is EventLevel.INFO

    def test_to_dict_wire_shape(self) -> None:
        event = WorkflowEvent(
            EventType.PROGRESS, "CriticAgent", "Evaluated", metadata={"progress": 50}
        )
        data = event.to_dict()
        assert set(data) == {"id", "timestamp", "type", "stage", "level", "message", "metadata"}
        assert data["type"] == "progress"
        assert data["metadata"] == {"progress": 50}

    def test_to_message_envelope(self) -> None:
        event = WorkflowEvent(EventType.RESULT, "DocumentationAgent", "Done")
        payload = json.loads(event.to_message())
        assert payload["type"] == "workflow"
        assert payload["data"]["stage"] == "DocumentationAgent"

    def test_metadata_is_read_only(self) -> None:
        source = {"progress": 10}
        event = WorkflowEvent(EventType.PROGRESS, "IdeationAgent", "x", metadata=source)
        source["progress"] = 99
        assert event.metadata["progress"] == 10
        with pytest.raises(TypeError):
            event.metadata["progress"] = 20  # type: ignore[index]

    def test_from_dict_accepts_agent_name(self) -> None:
        event = WorkflowEvent.from_dict(
            {"type": "error", "agentName": "CompetitorAgent", "message": "boom", "level": "error"}
        )
        assert event.stage == "CompetitorAgent"
        assert event.level is EventLevel.ERROR

    def test_from_dict_preserves_identity(self) -> None:
        original = WorkflowEvent(EventType.LOG, "Orchestrator", "hello")
        restored = WorkflowEvent.from_dict(original.to_dict())
        assert restored.id == original.id
        assert restored.timestamp == original.timestamp


class TestStageEvent:

    def test_defaults(self) -> None:
        event = StageEvent(EventType.STATUS, "Starting")
        assert event.level is EventLevel.INFO
        assert dict(event.metadata) == {}
