"""
events.py - Ledger notifications

Events are just data, sinks are just functions:
1. Event: Immutable record of a committed operation
2. EventSink: Callable receiving events (indexers, feeds, test recorders)
3. EventBus: Fan-out to subscribed sinks with at-least-once redelivery

Delivery is fire-and-forget from the ledger's point of view. A sink that
raises never rolls back or blocks the operation that produced the event;
the failed delivery is parked for redeliver().
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from .core import EventType


# ============================================================================
# EVENT DATA STRUCTURE
# ============================================================================

@dataclass(frozen=True, slots=True)
class Event:
    """
    Immutable notification of a committed ledger operation.

    Attributes:
        sequence: Position in the ledger's event log (0-based, monotonic)
        timestamp: Clock reading of the operation
        action: EventType value ("bottle_created", "bottle_liked", ...)
        bottle_id: Bottle the operation touched
        params: Operation-specific data as frozen (key, value) pairs
    """
    sequence: int
    timestamp: datetime
    action: str
    bottle_id: int
    params: tuple = ()

    @property
    def event_type(self) -> EventType:
        return EventType(self.action)

    @property
    def params_dict(self) -> Dict[str, Any]:
        """Get params as a dictionary for convenience."""
        return dict(self.params)

    @property
    def event_id(self) -> str:
        """Deterministic ID: unique per ledger, stable under redelivery."""
        return f"{self.sequence:012d}:{self.action}:{self.bottle_id}"

    def __repr__(self) -> str:
        params_str = ", ".join(f"{k}={v!r}" for k, v in self.params)
        return f"Event(#{self.sequence} {self.action} bottle={self.bottle_id} {params_str})"


def make_event(
    sequence: int,
    timestamp: datetime,
    event_type: EventType,
    bottle_id: int,
    **params: Any,
) -> Event:
    """Build an Event, freezing params in sorted key order."""
    return Event(
        sequence=sequence,
        timestamp=timestamp,
        action=event_type.value,
        bottle_id=bottle_id,
        params=tuple(sorted(params.items())),
    )


# ============================================================================
# EVENT BUS
# ============================================================================

EventSink = Callable[[Event], None]


class EventBus:
    """
    Deliver events to subscribed sinks.

    Design:
    - Sinks subscribe to all actions or a subset
    - publish() tries every sink; failures are parked in `undelivered`
    - redeliver() retries parked deliveries, so sinks must tolerate duplicates
    """

    def __init__(self):
        self._subscribers: List[Tuple[EventSink, Optional[Set[str]]]] = []
        self.undelivered: List[Tuple[EventSink, Event, Exception]] = []

    def subscribe(self, sink: EventSink, actions: Optional[Set[EventType]] = None) -> None:
        """
        Register a sink.

        Args:
            sink: Callable invoked with each matching Event
            actions: Event types to receive (default: all)
        """
        wanted = {a.value for a in actions} if actions else None
        self._subscribers.append((sink, wanted))

    def unsubscribe(self, sink: EventSink) -> None:
        self._subscribers = [(s, w) for s, w in self._subscribers if s is not sink]

    def publish(self, event: Event) -> int:
        """
        Deliver an event to every matching sink.

        Returns the number of successful deliveries.
        """
        delivered = 0
        for sink, wanted in self._subscribers:
            if wanted is not None and event.action not in wanted:
                continue
            if self._deliver(sink, event):
                delivered += 1
        return delivered

    def redeliver(self) -> int:
        """
        Retry all parked deliveries once, in original order.

        Returns the number that succeeded; failures are parked again.
        """
        pending, self.undelivered = self.undelivered, []
        delivered = 0
        for sink, event, _ in pending:
            if self._deliver(sink, event):
                delivered += 1
        return delivered

    def _deliver(self, sink: EventSink, event: Event) -> bool:
        try:
            sink(event)
        except Exception as exc:
            self.undelivered.append((sink, event, exc))
            return False
        return True

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)


class EventRecorder:
    """
    Sink that keeps every event it receives.

    Example:
        recorder = EventRecorder()
        bus.subscribe(recorder)
        ...
        assert recorder.actions() == ["bottle_created", "bottle_liked"]
    """

    def __init__(self):
        self.events: List[Event] = []

    def __call__(self, event: Event) -> None:
        self.events.append(event)

    def actions(self) -> List[str]:
        return [e.action for e in self.events]

    def of_type(self, event_type: EventType) -> List[Event]:
        return [e for e in self.events if e.action == event_type.value]

    def clear(self) -> None:
        self.events.clear()
