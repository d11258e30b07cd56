"""
In-memory event bus for retry executors.

Delivery is sequential, in subscription order, inside the publishing task.
A subscriber therefore sees one request's events in exactly the order the
executor produced them (``attempt.started``, ``attempt.failed``,
``retry.scheduled``, ...), even when its handler awaits.

A bounded history of recent events lets a dashboard or CLI replay the
timeline of a single request by its correlation id.
"""

from __future__ import annotations

import inspect
import itertools
from collections import deque
from dataclasses import dataclass

from retryspine.core.events import Event, EventHandler
from retryspine.core.logging import get_logger

__all__ = ["InMemoryEventBus"]

logger = get_logger(__name__)


@dataclass(frozen=True)
class _Subscriber:
    id: str
    pattern: str
    source: str | None
    handler: EventHandler

    def wants(self, event: Event) -> bool:
        if self.source is not None and event.source != self.source:
            return False
        return event.matches(self.pattern)


class InMemoryEventBus:
    """Single-process bus, shareable between several executors.

    Handlers may be plain functions or coroutine functions. A handler that
    raises is logged and counted in ``handler_errors``; the remaining
    handlers still run and the publishing executor never sees the error.

    Args:
        history_size: Recent events kept for ``history()`` (0 disables it)

    Example::

        bus = InMemoryEventBus()
        await bus.subscribe("circuit.*", page_oncall, source="quotes")

        executor = RetryExecutor("quotes", event_bus=bus)
        await executor.execute(fetch_quote)
        timeline = bus.history(executor.current_request().request_id)
    """

    def __init__(self, history_size: int = 500) -> None:
        if history_size < 0:
            raise ValueError("history_size must be >= 0")
        self._subscribers: list[_Subscriber] = []
        self._history: deque[Event] = deque(maxlen=history_size)
        self._ids = itertools.count(1)
        self._closed = False
        self.handler_errors = 0

    async def publish(self, event: Event) -> None:
        """Deliver ``event`` to each matching subscriber, one after another."""
        if self._closed:
            return
        if self._history.maxlen:
            self._history.append(event)

        # Copy: handlers may subscribe or unsubscribe while running
        for sub in [s for s in self._subscribers if s.wants(event)]:
            try:
                result = sub.handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.handler_errors += 1
                logger.warning(
                    "event_handler_error",
                    subscription_id=sub.id,
                    event_type=event.event_type,
                    correlation_id=event.correlation_id,
                    error=str(e),
                )

    async def subscribe(
        self,
        event_type: str,
        handler: EventHandler,
        *,
        source: str | None = None,
    ) -> str:
        """Subscribe to events matching a pattern.

        Args:
            event_type: Pattern to match (supports ``*`` and ``type.*``)
            handler: Callback for matching events, sync or async
            source: Only deliver events from this executor name

        Returns:
            Subscription ID
        """
        sub_id = f"sub-{next(self._ids)}"
        self._subscribers.append(_Subscriber(sub_id, event_type, source, handler))
        return sub_id

    async def unsubscribe(self, subscription_id: str) -> None:
        self._subscribers = [s for s in self._subscribers if s.id != subscription_id]

    async def close(self) -> None:
        """Stop delivering and drop subscribers. History stays readable."""
        self._closed = True
        self._subscribers.clear()

    def history(
        self,
        correlation_id: str | None = None,
        *,
        event_type: str = "*",
    ) -> list[Event]:
        """Recent events, oldest first, optionally for one request only."""
        return [
            e
            for e in self._history
            if (correlation_id is None or e.correlation_id == correlation_id)
            and e.matches(event_type)
        ]

    @property
    def subscription_count(self) -> int:
        return len(self._subscribers)
