"""Observer connections and subscription-filtered event delivery.

``ConnectionRegistry`` maps an observer identity to a live transport handle
and a subscription set of stage names.  It is wired to the event bus with
``bus.subscribe_all(registry.broadcast)``: every broadcast event is first
written to the ring buffer, then delivered to each open, subscribed observer
as ``{"type": "workflow", "data": <event>}``.

A newly (re)connected observer first receives a ``connected`` message and
then the buffered history filtered by its subscriptions, so it can rebuild
whatever it missed before live delivery resumes.  Disconnecting never touches
the ring buffer.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from idea_forge.domain.events import WorkflowEvent
from idea_forge.infrastructure.event_bus import EventRingBuffer

logger = logging.getLogger(__name__)

INVALID_MESSAGE = "Invalid message format"


@runtime_checkable
class ConnectionHandle(Protocol):
    """Transport handle for one observer (e.g. a websocket adapter)."""

    @property
    def is_open(self) -> bool: ...

    def send(self, message: str) -> None: ...


class QueueConnection:
    """In-process handle that queues outgoing messages.

    A transport task drains :attr:`queue` and writes each message to the
    wire; tests read the queue directly.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self.queue: asyncio.Queue[str] = asyncio.Queue(maxsize=maxsize)
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    def send(self, message: str) -> None:
        if not self._open:
            raise ConnectionError("connection is closed")
        self.queue.put_nowait(message)

    def close(self) -> None:
        self._open = False

    def drain(self) -> list[dict[str, Any]]:
        """Pop every queued message, decoded."""
        messages = []
        while not self.queue.empty():
            messages.append(json.loads(self.queue.get_nowait()))
        return messages


@dataclass
class Session:
    """Bookkeeping for one connected observer."""

    session_id: str
    handle: ConnectionHandle
    subscriptions: set[str] = field(default_factory=set)
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_activity: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def wants(self, event: WorkflowEvent) -> bool:
        return not self.subscriptions or event.stage in self.subscriptions

    def touch(self) -> None:
        self.last_activity = datetime.now(timezone.utc)


def _envelope(message_type: str, data: Any = None) -> str:
    payload: dict[str, Any] = {"type": message_type}
    if data is not None:
        payload["data"] = data
    return json.dumps(payload, default=str)


class ConnectionRegistry:
    """Process-wide registry of observer sessions.

    Parameters
    ----------
    buffer:
        Ring buffer holding recent history; ``broadcast`` appends to it and
        (re)connecting observers replay from it.
    """

    def __init__(self, buffer: EventRingBuffer) -> None:
        self.buffer = buffer
        self._sessions: dict[str, Session] = {}
        self._remembered: dict[str, set[str]] = {}
        self._lock = threading.RLock()

    # -- connection lifecycle -------------------------------------------------

    def add_connection(
        self,
        session_id: str,
        handle: ConnectionHandle,
        subscriptions: Iterable[str] | None = None,
    ) -> Session:
        """Register *handle* and replay buffered history to it.

        If *subscriptions* is ``None`` the set remembered from an earlier
        connection with the same id is reused (empty means all stages).
        """
        with self._lock:
            if subscriptions is None:
                subs = set(self._remembered.get(session_id, set()))
            else:
                subs = set(subscriptions)
            session = Session(session_id=session_id, handle=handle, subscriptions=subs)
            replaced = self._sessions.get(session_id)
            if replaced is not None:
                logger.info("Replacing existing connection for session %s", session_id)
            self._sessions[session_id] = session
            self._remembered[session_id] = set(subs)

            self._deliver(session, _envelope("connected", {
                "sessionId": session_id,
                "subscriptions": sorted(subs),
            }))
            history = self.get_buffered_events(session_id)
            for event in history:
                self._deliver(session, event.to_message())
        logger.info(
            "Session %s connected (%d buffered events replayed)", session_id, len(history)
        )
        return session

    def remove_connection(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        logger.info("Session %s disconnected", session_id)
        return True

    def update_subscriptions(self, session_id: str, stage_names: Iterable[str]) -> None:
        """Replace the subscription set of *session_id* (empty means all)."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise KeyError(f"Unknown session: {session_id!r}")
            session.subscriptions = set(stage_names)
            session.touch()
            self._remembered[session_id] = set(session.subscriptions)
        logger.debug("Session %s subscribed to %s", session_id, sorted(session.subscriptions))

    # -- delivery -------------------------------------------------------------

    def broadcast(self, event: WorkflowEvent) -> int:
        """Buffer *event* and push it to every interested open session.

        Returns the number of sessions it was delivered to.
        """
        message = event.to_message()
        delivered = 0
        with self._lock:
            self.buffer.push(event)
            for session in list(self._sessions.values()):
                if session.handle.is_open and session.wants(event):
                    if self._deliver(session, message):
                        delivered += 1
        return delivered

    def get_buffered_events(self, session_id: str) -> list[WorkflowEvent]:
        """Return buffered history filtered by the session's subscriptions."""
        with self._lock:
            session = self._sessions.get(session_id)
            subs = session.subscriptions if session else self._remembered.get(session_id, set())
            return list(self.buffer.query(stages=subs))

    def _deliver(self, session: Session, message: str) -> bool:
        try:
            session.handle.send(message)
        except Exception:
            logger.exception("Failed to send to session %s", session.session_id)
            return False
        return True

    # -- control messages -----------------------------------------------------

    def handle_client_message(self, session_id: str, raw: str) -> None:
        """Apply a control message received from an observer.

        Supported messages: ``ping`` (answered with ``pong``), ``subscribe``
        and ``unsubscribe`` carrying ``data.stage`` (``data.agentName`` is
        accepted too).
        """
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise KeyError(f"Unknown session: {session_id!r}")
        session.touch()

        try:
            message = json.loads(raw)
            message_type = message["type"]
        except (json.JSONDecodeError, KeyError, TypeError):
            logger.warning("Invalid message from session %s: %r", session_id, raw)
            self._deliver(session, _envelope("error", {"message": INVALID_MESSAGE}))
            return

        data = message.get("data") or {}
        stage = (data.get("stage") or data.get("agentName")) if isinstance(data, dict) else None

        if message_type == "ping":
            self._deliver(session, _envelope("pong"))
        elif message_type in ("subscribe", "unsubscribe") and stage:
            subs = set(session.subscriptions)
            if message_type == "subscribe":
                subs.add(stage)
            else:
                subs.discard(stage)
            self.update_subscriptions(session_id, subs)
        else:
            logger.warning("Unknown message type from session %s: %r", session_id, message_type)
            self._deliver(
                session, _envelope("error", {"message": f"Unknown message type: {message_type}"})
            )

    # -- introspection --------------------------------------------------------

    def active_sessions(self) -> list[str]:
        with self._lock:
            return [sid for sid, s in self._sessions.items() if s.handle.is_open]

    def is_connected(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.get(session_id)
            return session is not None and session.handle.is_open

    def subscriptions(self, session_id: str) -> set[str]:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                return set(session.subscriptions)
            return set(self._remembered.get(session_id, set()))

    def clear_buffer(self) -> None:
        self.buffer.clear()
        logger.info("Event buffer cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __repr__(self) -> str:
        return f"ConnectionRegistry(sessions={len(self)}, buffered={len(self.buffer)})"
