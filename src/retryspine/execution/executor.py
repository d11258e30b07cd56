"""Retry executor: the resilient request execution core.

Wraps a caller-supplied async operation with retries, backoff, error
classification and a circuit breaker, and keeps aggregate statistics.
One ``RetryExecutor`` guards one logical target and owns its breaker and
statistics; construct one per target and pass it around explicitly.

Per call::

    attempt = 0
    loop:
        breaker.admit()?          no  -> Err(TerminalError, circuit_open=True)
        run operation             ok  -> Ok(result)
        classify failure          non-retryable or budget spent -> Err(TerminalError)
        sleep(compute_delay(attempt)); attempt += 1

Every attempt outcome is recorded with the breaker and statistics, and
published on the event bus.

Example:
    >>> executor = RetryExecutor("quotes", failure_threshold=3, open_duration=30.0)
    >>> result = await executor.execute(fetch_quote, RetryPolicy(max_retries=3))
    >>> if result.is_err():
    ...     print(result.error.attempts, result.error.circuit_open)
"""

from __future__ import annotations

import asyncio
import contextvars
import inspect
import random
import time
import uuid
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from retryspine.core.errors import ErrorKind, RequestTimeoutError, ResilienceError, TerminalError
from retryspine.core.events import Event, EventBus, EventType
from retryspine.core.events.memory import InMemoryEventBus
from retryspine.core.logging import LogContext, get_logger
from retryspine.core.result import Err, Ok, Result
from retryspine.core.settings import ResilienceSettings, get_settings
from retryspine.execution.backoff import apply_jitter, compute_delay
from retryspine.execution.circuit_breaker import (
    CircuitBreaker,
    CircuitSnapshot,
    CircuitState,
    Permit,
)
from retryspine.execution.classifier import Classification, classify, error_kind
from retryspine.execution.models import (
    AttemptFailure,
    AttemptOutcome,
    AttemptSuccess,
    CurrentRequestView,
    RequestStatus,
)
from retryspine.execution.policy import RetryPolicy
from retryspine.execution.statistics import StatisticsAggregator, StatisticsSnapshot

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
SleepFn = Callable[[float], Awaitable[None]]

logger = get_logger(__name__)

# Request id of the execute() call running in the current task, if any
_active_request: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "retryspine_active_request", default=None
)

_CIRCUIT_EVENTS = {
    CircuitState.OPEN: EventType.CIRCUIT_OPENED,
    CircuitState.HALF_OPEN: EventType.CIRCUIT_HALF_OPENED,
    CircuitState.CLOSED: EventType.CIRCUIT_CLOSED,
}


class RetryExecutor:
    """Retry orchestration around one guarded operation target.

    Args:
        name: Target name, used for the breaker, logs and event source
        policy: Default policy when ``execute`` is called without one
        failure_threshold: Consecutive failures that open the breaker
        open_duration: Seconds the breaker stays open before a trial
        event_bus: Where domain events go (in-memory bus if omitted)
        response_time_window: Response times kept for averages
        clock: Monotonic time source in seconds
        sleep: Coroutine used for backoff waits
        rng: Random source for jitter
    """

    def __init__(
        self,
        name: str = "default",
        *,
        policy: RetryPolicy | None = None,
        failure_threshold: int = 3,
        open_duration: float = 30.0,
        event_bus: EventBus | None = None,
        response_time_window: int | None = 1000,
        clock: Callable[[], float] = time.monotonic,
        sleep: SleepFn = asyncio.sleep,
        rng: random.Random | None = None,
    ):
        self.name = name
        self.policy = policy or RetryPolicy()
        self.event_bus: EventBus = event_bus or InMemoryEventBus()
        self._clock = clock
        self._sleep = sleep
        self._rng = rng
        self._pending_events: deque[Event] = deque()
        self._current = CurrentRequestView()

        self.breaker = CircuitBreaker(
            name=name,
            failure_threshold=failure_threshold,
            open_duration=open_duration,
            clock=clock,
            on_state_change=self._on_circuit_change,
        )
        self.statistics = StatisticsAggregator(response_time_window)

    @classmethod
    def from_settings(
        cls,
        name: str = "default",
        settings: ResilienceSettings | None = None,
        **kwargs: Any,
    ) -> RetryExecutor:
        """Build an executor from ``ResilienceSettings`` (env defaults if omitted)."""
        settings = settings or get_settings()
        return cls(
            name,
            policy=settings.to_policy(),
            failure_threshold=settings.circuit_threshold,
            open_duration=settings.circuit_open_duration,
            response_time_window=settings.response_time_window,
            **kwargs,
        )

    # ── Observable state ─────────────────────────────────────────────

    def statistics_snapshot(self) -> StatisticsSnapshot:
        return self.statistics.snapshot()

    def circuit_state(self) -> CircuitState:
        return self.breaker.state

    def circuit_snapshot(self) -> CircuitSnapshot:
        """Breaker state including time remaining until half-open."""
        return self.breaker.snapshot()

    def current_request(self) -> CurrentRequestView:
        """View of the most recently updated call (last writer wins)."""
        return self._current

    # ── Execution ────────────────────────────────────────────────────

    async def execute(
        self,
        operation: Operation[T],
        policy: RetryPolicy | None = None,
    ) -> Result[T]:
        """Run ``operation`` under the retry policy.

        Returns:
            ``Ok(value)`` on the first successful attempt, otherwise
            ``Err(TerminalError)`` carrying the last error, the number of
            attempts made and whether the breaker was the proximate cause.

        Raises:
            asyncio.CancelledError: If the caller cancels the call
        """
        policy = policy or self.policy
        request_id = uuid.uuid4().hex[:12]
        started = self._clock()
        attempt = 0

        self._current = CurrentRequestView(
            status=RequestStatus.LOADING,
            max_attempts=policy.max_attempts,
            request_id=request_id,
        )

        token = _active_request.set(request_id)
        async with LogContext(target=self.name, request_id=request_id):
            try:
                while True:
                    permit = self.breaker.acquire()
                    await self._flush_circuit_events()
                    if not permit:
                        return await self._reject(request_id, attempts=attempt)

                    outcome = await self._run_attempt(
                        operation, policy, attempt, request_id, permit
                    )

                    if isinstance(outcome, AttemptSuccess):
                        return await self._succeed(outcome, request_id, started, attempts=attempt + 1)

                    budget_spent = attempt >= policy.max_retries
                    if budget_spent or classify(outcome.error) is Classification.NON_RETRYABLE:
                        return await self._fail(outcome, request_id, attempts=attempt + 1)

                    delay = self._retry_delay(policy, attempt, outcome.error)
                    self.statistics.record_retry_scheduled()
                    self._current = self._current.evolve(
                        status=RequestStatus.RETRYING,
                        next_retry_at=self._clock() + delay,
                    )
                    logger.info("retry_scheduled", attempt=attempt + 1, delay=delay)
                    await self._emit(
                        EventType.RETRY_SCHEDULED,
                        request_id,
                        attempt=attempt + 1,
                        delay=delay,
                    )
                    await self._sleep(delay)
                    attempt += 1
            except asyncio.CancelledError:
                self.statistics.record_request_cancelled()
                self._current = self._current.evolve(status=RequestStatus.FAILED, next_retry_at=None)
                logger.info("request_cancelled", attempts=attempt)
                raise
            finally:
                _active_request.reset(token)

    async def execute_with_fallback(
        self,
        operation: Operation[T],
        fallback: Callable[[], T | Awaitable[T]],
        policy: RetryPolicy | None = None,
    ) -> Result[T]:
        """Like ``execute``, but substitute ``fallback()`` for a terminal failure."""
        result = await self.execute(operation, policy)
        if result.is_ok():
            return result

        value = fallback()
        if inspect.isawaitable(value):
            value = await value
        logger.warning("fallback_activated", reason=str(result.error))
        await self._emit(
            EventType.FALLBACK_ACTIVATED,
            None,
            reason=result.error.to_dict() if isinstance(result.error, ResilienceError) else str(result.error),
        )
        return Ok(value)

    # ── Attempt handling ─────────────────────────────────────────────

    async def _run_attempt(
        self,
        operation: Operation[T],
        policy: RetryPolicy,
        attempt: int,
        request_id: str,
        permit: Permit,
    ) -> AttemptOutcome:
        self.statistics.record_attempt_start()
        self._current = self._current.evolve(
            status=RequestStatus.LOADING,
            attempt=attempt + 1,
            next_retry_at=None,
        )
        logger.debug("attempt_started", attempt=attempt + 1, max_attempts=policy.max_attempts)
        await self._emit(
            EventType.ATTEMPT_STARTED,
            request_id,
            attempt=attempt + 1,
            max_attempts=policy.max_attempts,
        )

        attempt_started = self._clock()
        try:
            value = await self._invoke(operation, policy.request_timeout)
        except Exception as exc:
            failure = AttemptFailure(
                kind=error_kind(exc),
                message=str(exc),
                latency=self._clock() - attempt_started,
                error=exc,
            )
            self.breaker.record_failure()
            self.statistics.record_failure(failure.kind)
            logger.warning(
                "attempt_failed",
                attempt=attempt + 1,
                kind=failure.kind.value,
                error=failure.message,
            )
            await self._flush_circuit_events()
            await self._emit(
                EventType.ATTEMPT_FAILED,
                request_id,
                attempt=attempt + 1,
                kind=failure.kind.value,
                message=failure.message,
                latency=failure.latency,
            )
            return failure
        except BaseException:
            # Cancelled mid-flight: neither success nor failure
            self.breaker.release_trial(permit)
            raise

        success = AttemptSuccess(result=value, latency=self._clock() - attempt_started)
        self.breaker.record_success()
        await self._flush_circuit_events()
        await self._emit(
            EventType.ATTEMPT_SUCCEEDED,
            request_id,
            attempt=attempt + 1,
            latency=success.latency,
        )
        return success

    async def _invoke(self, operation: Operation[T], timeout: float | None) -> T:
        if timeout is None:
            return await _await_result(operation())

        try:
            async with asyncio.timeout(timeout) as deadline:
                return await _await_result(operation())
        except TimeoutError as exc:
            if deadline.expired():
                raise RequestTimeoutError(
                    f"Request timeout after {timeout}s",
                    timeout=timeout,
                    cause=exc,
                ) from exc
            raise

    def _retry_delay(self, policy: RetryPolicy, attempt: int, error: BaseException) -> float:
        delay = compute_delay(
            attempt,
            policy.base_delay,
            policy.backoff_kind,
            max_delay=policy.max_delay,
        )
        if policy.jitter:
            delay = apply_jitter(delay, policy.jitter, self._rng)
        if isinstance(error, ResilienceError) and error.retry_after is not None:
            delay = max(delay, error.retry_after)
        return delay

    # ── Terminal outcomes ────────────────────────────────────────────

    async def _succeed(
        self,
        outcome: AttemptSuccess[T],
        request_id: str,
        started: float,
        *,
        attempts: int,
    ) -> Result[T]:
        elapsed = self._clock() - started
        self.statistics.record_success(elapsed)
        self._current = self._current.evolve(status=RequestStatus.SUCCESS, next_retry_at=None)
        logger.info("request_succeeded", attempts=attempts, elapsed=elapsed)
        await self._emit(
            EventType.REQUEST_SUCCEEDED,
            request_id,
            attempts=attempts,
            elapsed=elapsed,
        )
        return Ok(outcome.result)

    async def _fail(self, outcome: AttemptFailure, request_id: str, *, attempts: int) -> Result[Any]:
        terminal = TerminalError(outcome.error, attempts=attempts, kind=outcome.kind)
        self.statistics.record_request_failed()
        self._current = self._current.evolve(status=RequestStatus.FAILED, next_retry_at=None)
        logger.error("request_failed", attempts=attempts, kind=outcome.kind.value, error=outcome.message)
        await self._emit(EventType.REQUEST_FAILED, request_id, **terminal.to_dict())
        return Err(terminal)

    async def _reject(self, request_id: str, *, attempts: int) -> Result[Any]:
        rejection = self.breaker.rejection()
        terminal = TerminalError(
            rejection,
            attempts=attempts,
            kind=ErrorKind.CIRCUIT_OPEN,
            circuit_open=True,
        )
        self.statistics.record_request_failed(rejected=True)
        self._current = self._current.evolve(status=RequestStatus.FAILED, next_retry_at=None)
        logger.warning("request_rejected", attempts=attempts, retry_in=rejection.retry_in)
        await self._emit(
            EventType.REQUEST_REJECTED,
            request_id,
            attempts=attempts,
            retry_in=rejection.retry_in,
        )
        return Err(terminal)

    # ── Events ───────────────────────────────────────────────────────

    def _on_circuit_change(
        self,
        breaker: CircuitBreaker,
        old: CircuitState,
        new: CircuitState,
    ) -> None:
        # Runs under the breaker lock; queue only, publish from async code.
        # Transitions seen outside execute() (state polling) carry no request id.
        self._pending_events.append(
            Event(
                event_type=_CIRCUIT_EVENTS[new].value,
                source=self.name,
                payload={
                    "from": old.value,
                    "to": new.value,
                    "consecutive_failures": breaker.consecutive_failures,
                },
                correlation_id=_active_request.get(),
            )
        )

    async def _flush_circuit_events(self) -> None:
        while self._pending_events:
            await self.event_bus.publish(self._pending_events.popleft())

    async def _emit(self, event_type: EventType, request_id: str | None, **payload: Any) -> None:
        await self.event_bus.publish(
            Event(
                event_type=event_type.value,
                source=self.name,
                payload=payload,
                correlation_id=request_id,
            )
        )


async def _await_result(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


__all__ = ["Operation", "RetryExecutor"]
