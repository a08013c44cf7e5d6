"""Event distribution primitives for idea-forge.

Provides a synchronous pub-sub bus for ``WorkflowEvent`` instances, a
fixed-capacity ring buffer that keeps the most recent events for replay, and
the emitter that stages and the orchestrator use as their event sink.  The bus
catches and logs handler errors so that a single failing subscriber never
breaks the publish pipeline.

The ring buffer and the connection registry have a process-wide lifetime:
construct them once at start-up and pass them to collaborators.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict, deque
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from idea_forge.domain.enums import EventLevel, EventType
from idea_forge.domain.events import WorkflowEvent

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_CAPACITY = 1000

EventHandler = Callable[[WorkflowEvent], None]


# ===================================================================== #
#  Event Bus                                                             #
# ===================================================================== #

class EventBus:
    """Thread-safe synchronous pub-sub for workflow events.

    Handlers are invoked **in registration order**.  A handler that raises is
    logged and skipped; subsequent handlers still execute.

    Usage::

        bus = EventBus()
        bus.subscribe(EventType.PROGRESS, my_handler)
        bus.subscribe_all(registry.broadcast)
        bus.publish(event)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: dict[EventType, list[EventHandler]] = defaultdict(list)
        self._global_handlers: list[EventHandler] = []

    # -- subscription -------------------------------------------------------

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Register *handler* for a specific *event_type*."""
        with self._lock:
            self._handlers[event_type].append(handler)

    def subscribe_all(self, handler: EventHandler) -> None:
        """Register *handler* to receive **every** published event."""
        with self._lock:
            self._global_handlers.append(handler)

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> bool:
        """Remove *handler* from *event_type*. Returns ``True`` if found."""
        with self._lock:
            handlers = self._handlers.get(event_type, [])
            try:
                handlers.remove(handler)
                return True
            except ValueError:
                return False

    def unsubscribe_all(self, handler: EventHandler) -> bool:
        """Remove a global handler. Returns ``True`` if found."""
        with self._lock:
            try:
                self._global_handlers.remove(handler)
                return True
            except ValueError:
                return False

    # -- publishing ---------------------------------------------------------

    def publish(self, event: WorkflowEvent) -> None:
        """Publish *event* to all matching handlers (global first, then typed)."""
        with self._lock:
            global_snapshot = list(self._global_handlers)
            typed_snapshot = list(self._handlers.get(event.type, []))

        for handler in global_snapshot:
            try:
                handler(event)
            except Exception:
                logger.exception("Error in global event handler %r", handler)

        for handler in typed_snapshot:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Error in handler %r for %s event", handler, event.type.value
                )

    def handler_count(self, event_type: EventType | None = None) -> int:
        with self._lock:
            if event_type is not None:
                return len(self._handlers.get(event_type, []))
            total = sum(len(hs) for hs in self._handlers.values())
            return total + len(self._global_handlers)

    def clear(self) -> None:
        """Remove all registered handlers."""
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()


# ===================================================================== #
#  Event Ring Buffer                                                     #
# ===================================================================== #

class EventRingBuffer:
    """Fixed-capacity log of the most recent events.

    ``push`` is O(1); once full, each push evicts the oldest entry.
    ``get_all`` returns entries in chronological order.
    """

    def __init__(self, capacity: int = DEFAULT_BUFFER_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._events: deque[WorkflowEvent] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._events.maxlen or 0

    def push(self, event: WorkflowEvent) -> None:
        with self._lock:
            self._events.append(event)

    def get_all(self) -> list[WorkflowEvent]:
        with self._lock:
            return list(self._events)

    def query(
        self,
        event_type: EventType | None = None,
        stages: Iterable[str] | None = None,
        limit: int = 0,
    ) -> Sequence[WorkflowEvent]:
        """Return buffered events matching the optional filters.

        Parameters
        ----------
        event_type:
            If given, only return events of this type.
        stages:
            If given and non-empty, only return events emitted by one of
            these stages.
        limit:
            Maximum number of (most recent) events to return (0 = unlimited).
        """
        result = self.get_all()
        if event_type is not None:
            result = [e for e in result if e.type is event_type]
        stage_set = set(stages or ())
        if stage_set:
            result = [e for e in result if e.stage in stage_set]
        if limit > 0:
            result = result[-limit:]
        return result

    @property
    def latest(self) -> WorkflowEvent | None:
        with self._lock:
            return self._events[-1] if self._events else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def __bool__(self) -> bool:
        return len(self) > 0

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


# ===================================================================== #
#  Event Emitter                                                         #
# ===================================================================== #

class WorkflowEventEmitter:
    """Event sink shared by the orchestrator and every stage.

    Builds a ``WorkflowEvent`` stamped with an id and timestamp and publishes
    it on the bus.  The emitter keeps nothing itself; recent history lives in
    the :class:`EventRingBuffer` owned by the connection registry.
    """

    def __init__(self, bus: EventBus | None = None) -> None:
        self.bus = bus if bus is not None else EventBus()

    def emit(
        self,
        event_type: EventType,
        stage: str,
        message: str,
        level: EventLevel = EventLevel.INFO,
        metadata: Mapping[str, Any] | None = None,
    ) -> WorkflowEvent:
        event = WorkflowEvent(
            type=event_type,
            stage=stage,
            message=message,
            level=level,
            metadata=metadata or {},
        )
        self.bus.publish(event)
        return event
