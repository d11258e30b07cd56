"""Domain event stream for retry executors.

Why This Package Exists
-----------------------
Dashboards, log panes and telemetry exporters want to know what a guarded
call is doing (attempt started, retry scheduled, circuit opened) without the
executor knowing how anything is displayed.  The executor publishes
``Event`` objects to an ``EventBus``; collaborators subscribe with
wildcard patterns.

Usage::

    from retryspine.core.events import EventType
    from retryspine.core.events.memory import InMemoryEventBus

    bus = InMemoryEventBus()

    async def on_circuit(event):
        print(event.event_type, event.payload)

    await bus.subscribe("circuit.*", on_circuit)
    executor = RetryExecutor("quotes", event_bus=bus)

Modules
-------
memory      InMemoryEventBus -- ordered delivery, per-request history
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable

__all__ = [
    "Event",
    "EventBus",
    "EventHandler",
    "EventType",
]


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


class EventType(str, Enum):
    """Event types published by the retry executor."""

    ATTEMPT_STARTED = "attempt.started"
    ATTEMPT_SUCCEEDED = "attempt.succeeded"
    ATTEMPT_FAILED = "attempt.failed"
    RETRY_SCHEDULED = "retry.scheduled"
    CIRCUIT_OPENED = "circuit.opened"
    CIRCUIT_HALF_OPENED = "circuit.half_opened"
    CIRCUIT_CLOSED = "circuit.closed"
    REQUEST_SUCCEEDED = "request.succeeded"
    REQUEST_FAILED = "request.failed"
    REQUEST_REJECTED = "request.rejected"
    FALLBACK_ACTIVATED = "fallback.activated"


# ── Event Model ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Event:
    """Immutable event payload.

    Attributes:
        event_type: Dot-separated type (e.g., ``attempt.failed``)
        source: Name of the guarded target that produced the event
        payload: Event-specific data
        timestamp: When the event occurred (UTC)
        correlation_id: Request ID linking every event of one top-level call
        event_id: Unique event identifier
    """

    event_type: str
    source: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)
    correlation_id: str | None = None
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def matches(self, pattern: str) -> bool:
        """Check if event type matches a pattern (supports wildcards).

        Examples:
            - ``circuit.*`` matches ``circuit.opened``, ``circuit.closed``
            - ``*`` matches everything
            - ``retry.scheduled`` matches exactly ``retry.scheduled``
        """
        if pattern == "*":
            return True
        if pattern.endswith(".*"):
            prefix = pattern[:-2]
            return self.event_type.startswith(prefix + ".")
        return self.event_type == pattern

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON/logging."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "source": self.source,
            "timestamp": self.timestamp.isoformat(),
            "correlation_id": self.correlation_id,
            "payload": self.payload,
        }


# ── Type Aliases ─────────────────────────────────────────────────────────

EventHandler = Callable[[Event], Awaitable[None] | None]


# ── EventBus Protocol ────────────────────────────────────────────────────


@runtime_checkable
class EventBus(Protocol):
    """Protocol for event bus implementations.

    Supports publish/subscribe with wildcard patterns. Implementations
    must be async-compatible.
    """

    async def publish(self, event: Event) -> None:
        """Publish an event to all matching subscribers."""
        ...

    async def subscribe(
        self,
        event_type: str,
        handler: EventHandler,
    ) -> str:
        """Subscribe to events matching a pattern.

        Args:
            event_type: Pattern to match (e.g., ``circuit.*``, ``retry.scheduled``)
            handler: Callback for matching events, sync or async

        Returns:
            Subscription ID for later unsubscription
        """
        ...

    async def unsubscribe(self, subscription_id: str) -> None:
        """Remove a subscription."""
        ...

    async def close(self) -> None:
        """Clean up resources (queues, subscriptions, etc.)."""
        ...
