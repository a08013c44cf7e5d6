"""Tests for the observer connection registry."""

from __future__ import annotations

import json

import pytest

from idea_forge.domain.enums import EventType
from idea_forge.domain.events import WorkflowEvent
from idea_forge.infrastructure.connections import (
    INVALID_MESSAGE,
    ConnectionHandle,
    ConnectionRegistry,
    QueueConnection,
)
from idea_forge.infrastructure.event_bus import EventBus, EventRingBuffer, WorkflowEventEmitter


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry(EventRingBuffer(capacity=50))


def _publish(registry: ConnectionRegistry, stage: str, message: str) -> None:
    registry.broadcast(WorkflowEvent(type=EventType.STATUS, stage=stage, message=message))


def _workflow_messages(handle: QueueConnection) -> list[str]:
    return [m["data"]["message"] for m in handle.drain() if m["type"] == "workflow"]


class TestConnectionRegistry:

    def test_queue_connection_is_a_handle(self) -> None:
        assert isinstance(QueueConnection(), ConnectionHandle)

    def test_connect_replays_filtered_history(self, registry) -> None:
        _publish(registry, "IdeationAgent", "ideation started")
        _publish(registry, "CriticAgent", "critic started")

        handle = QueueConnection()
        registry.add_connection("s1", handle, subscriptions=["CriticAgent"])
        messages = handle.drain()
        assert messages[0]["type"] == "connected"
        assert messages[0]["data"]["subscriptions"] == ["CriticAgent"]
        assert [m["data"]["message"] for m in messages[1:]] == ["critic started"]

    def test_live_delivery_respects_subscriptions(self, registry) -> None:
        everything, critic_only = QueueConnection(), QueueConnection()
        registry.add_connection("all", everything)
        registry.add_connection("critic", critic_only, subscriptions=["CriticAgent"])
        everything.drain()
        critic_only.drain()

        _publish(registry, "IdeationAgent", "one")
        _publish(registry, "CriticAgent", "two")
        assert _workflow_messages(everything) == ["one", "two"]
        assert _workflow_messages(critic_only) == ["two"]

    def test_reconnect_remembers_subscriptions(self, registry) -> None:
        registry.add_connection("s1", QueueConnection(), subscriptions=["CompetitorAgent"])
        registry.remove_connection("s1")
        _publish(registry, "CompetitorAgent", "missed")
        _publish(registry, "IdeationAgent", "ignored")

        handle = QueueConnection()
        registry.add_connection("s1", handle)
        assert registry.subscriptions("s1") == {"CompetitorAgent"}
        assert _workflow_messages(handle) == ["missed"]

    def test_reconnect_after_wraparound_replays_subscribed_subset(self) -> None:
        registry = ConnectionRegistry(EventRingBuffer(capacity=4))
        registry.add_connection("s1", QueueConnection(), subscriptions=["CriticAgent"])
        registry.remove_connection("s1")

        for n in range(10):
            stage = "CriticAgent" if n % 2 == 0 else "CompetitorAgent"
            _publish(registry, stage, f"event {n}")

        handle = QueueConnection()
        registry.add_connection("s1", handle)
        assert _workflow_messages(handle) == ["event 6", "event 8"]
        assert [e.message for e in registry.buffer.get_all()] == [
            "event 6", "event 7", "event 8", "event 9",
        ]

    def test_disconnect_keeps_buffer(self, registry) -> None:
        registry.add_connection("s1", QueueConnection())
        _publish(registry, "IdeationAgent", "kept")
        assert registry.remove_connection("s1") is True
        assert registry.remove_connection("s1") is False
        assert len(registry.buffer) == 1

    def test_closed_handle_skipped(self, registry) -> None:
        closed, open_ = QueueConnection(), QueueConnection()
        registry.add_connection("closed", closed)
        registry.add_connection("open", open_)
        closed.close()
        assert registry.active_sessions() == ["open"]
        assert registry.broadcast(
            WorkflowEvent(type=EventType.STATUS, stage="IdeationAgent", message="x")
        ) == 1

    def test_ping_pong(self, registry) -> None:
        handle = QueueConnection()
        registry.add_connection("s1", handle)
        handle.drain()
        registry.handle_client_message("s1", json.dumps({"type": "ping"}))
        assert handle.drain() == [{"type": "pong"}]

    def test_subscribe_and_unsubscribe(self, registry) -> None:
        registry.add_connection("s1", QueueConnection())
        registry.handle_client_message(
            "s1", json.dumps({"type": "subscribe", "data": {"stage": "CriticAgent"}})
        )
        registry.handle_client_message(
            "s1", json.dumps({"type": "subscribe", "data": {"agentName": "IdeationAgent"}})
        )
        assert registry.subscriptions("s1") == {"CriticAgent", "IdeationAgent"}
        registry.handle_client_message(
            "s1", json.dumps({"type": "unsubscribe", "data": {"stage": "CriticAgent"}})
        )
        assert registry.subscriptions("s1") == {"IdeationAgent"}

    def test_invalid_and_unknown_messages(self, registry) -> None:
        handle = QueueConnection()
        registry.add_connection("s1", handle)
        handle.drain()
        registry.handle_client_message("s1", "not json")
        registry.handle_client_message("s1", json.dumps({"type": "shout"}))
        first, second = handle.drain()
        assert first == {"type": "error", "data": {"message": INVALID_MESSAGE}}
        assert second["type"] == "error"
        assert "shout" in second["data"]["message"]

    def test_unknown_session(self, registry) -> None:
        with pytest.raises(KeyError):
            registry.handle_client_message("ghost", "{}")
        with pytest.raises(KeyError):
            registry.update_subscriptions("ghost", [])

    def test_wired_to_bus(self, registry) -> None:
        bus = EventBus()
        bus.subscribe_all(registry.broadcast)
        handle = QueueConnection()
        registry.add_connection("s1", handle)
        handle.drain()
        WorkflowEventEmitter(bus).emit(EventType.PROGRESS, "CriticAgent", "scored")
        [message] = handle.drain()
        assert message["type"] == "workflow"
        assert message["data"]["stage"] == "CriticAgent"
        assert message["data"]["type"] == "progress"
