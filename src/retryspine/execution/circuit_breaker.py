"""Circuit breaker pattern for fault tolerance.

Prevents hammering a failing dependency by failing fast once it has
produced ``failure_threshold`` consecutive failures.

States:
    CLOSED: Normal operation, every call admitted
    OPEN: Failing fast, calls rejected without contacting the remote
    HALF_OPEN: One trial call admitted to test recovery

Transitions:
    CLOSED    --threshold consecutive failures-->  OPEN
    OPEN      --open_duration elapsed-->           HALF_OPEN
    HALF_OPEN --trial success-->                   CLOSED
    HALF_OPEN --trial failure-->                   OPEN

A rejection is not a failure: a rejected ``acquire()`` never touches
``consecutive_failures``, so sustained load against an open breaker cannot
extend the open period.

Example:
    >>> breaker = CircuitBreaker("quotes", failure_threshold=3, open_duration=30.0)
    >>> if breaker.admit():
    ...     try:
    ...         quote = await fetch_quote()
    ...         breaker.record_success()
    ...     except Exception:
    ...         breaker.record_failure()
    ...         raise
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from retryspine.core.errors import CircuitOpenError
from retryspine.core.logging import get_logger

logger = get_logger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"      # Normal operation
    OPEN = "open"          # Rejecting requests
    HALF_OPEN = "half_open"  # Testing recovery


StateChangeListener = Callable[["CircuitBreaker", CircuitState, CircuitState], None]


@dataclass(frozen=True)
class CircuitSnapshot:
    """Point-in-time view of a breaker for dashboards and health checks."""

    name: str
    state: CircuitState
    consecutive_failures: int
    failure_threshold: int
    open_duration: float
    last_failure_time: float | None
    time_until_half_open: float | None
    rejected_requests: int
    state_changes: int

    @property
    def is_open(self) -> bool:
        return self.state is CircuitState.OPEN

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "consecutive_failures": self.consecutive_failures,
            "failure_threshold": self.failure_threshold,
            "open_duration": self.open_duration,
            "time_until_half_open": self.time_until_half_open,
            "rejected_requests": self.rejected_requests,
            "state_changes": self.state_changes,
        }


@dataclass(frozen=True)
class Permit:
    """Outcome of ``CircuitBreaker.acquire()``.

    Truthy when the call may proceed. ``trial_id`` is set only for the
    half-open trial, and ``release_trial`` frees nothing without it.
    """

    admitted: bool
    trial_id: int | None = None

    @property
    def is_trial(self) -> bool:
        return self.trial_id is not None

    def __bool__(self) -> bool:
        return self.admitted


@dataclass
class CircuitBreaker:
    """Circuit breaker guarding one logical operation target.

    All state lives behind a re-entrant lock, so concurrent callers (tasks
    or threads) cannot race past the threshold check.

    Attributes:
        name: Identifier for this circuit
        failure_threshold: Consecutive failures before opening
        open_duration: Seconds to stay open before admitting a trial
        clock: Monotonic time source in seconds
        on_state_change: Called as ``(breaker, old, new)`` on every transition
    """

    name: str = "default"
    failure_threshold: int = 3
    open_duration: float = 30.0
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    on_state_change: StateChangeListener | None = field(default=None, repr=False)

    # Internal state
    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _consecutive_failures: int = field(default=0, init=False)
    _last_failure_time: float | None = field(default=None, init=False)
    _trial_in_flight: bool = field(default=False, init=False)
    _trial_id: int = field(default=0, init=False)
    _rejected_requests: int = field(default=0, init=False)
    _state_changes: int = field(default=0, init=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be > 0")
        if self.open_duration < 0:
            raise ValueError("open_duration must be >= 0")

    @property
    def state(self) -> CircuitState:
        """Get current circuit state."""
        with self._lock:
            self._check_state_transition()
            return self._state

    @property
    def consecutive_failures(self) -> int:
        with self._lock:
            return self._consecutive_failures

    @property
    def last_failure_time(self) -> float | None:
        with self._lock:
            return self._last_failure_time

    def _check_state_transition(self) -> None:
        """Move OPEN -> HALF_OPEN once the open period has elapsed."""
        if self._state is CircuitState.OPEN and self._last_failure_time is not None:
            elapsed = self.clock() - self._last_failure_time
            if elapsed >= self.open_duration:
                self._trial_in_flight = False
                self._transition_to(CircuitState.HALF_OPEN)

    def _transition_to(self, new_state: CircuitState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        self._state_changes += 1

        if new_state is CircuitState.OPEN:
            logger.warning(
                "circuit_opened",
                circuit=self.name,
                consecutive_failures=self._consecutive_failures,
                open_duration=self.open_duration,
            )
        elif new_state is CircuitState.HALF_OPEN:
            logger.info("circuit_half_opened", circuit=self.name)
        else:
            logger.info("circuit_closed", circuit=self.name)

        if self.on_state_change is not None:
            self.on_state_change(self, old_state, new_state)

    def acquire(self) -> Permit:
        """Ask to make one call.

        Returns:
            An admitted ``Permit`` when closed, or the half-open trial
            permit (carrying a fresh ``trial_id``) when no trial is in
            flight. Otherwise a rejected permit.
        """
        with self._lock:
            self._check_state_transition()

            if self._state is CircuitState.CLOSED:
                return Permit(admitted=True)

            if self._state is CircuitState.HALF_OPEN and not self._trial_in_flight:
                self._trial_in_flight = True
                self._trial_id += 1
                return Permit(admitted=True, trial_id=self._trial_id)

            self._rejected_requests += 1
            return Permit(admitted=False)

    def admit(self) -> bool:
        """Check whether a call may proceed (closed, or the half-open trial)."""
        return self.acquire().admitted

    def record_success(self) -> None:
        """Record a successful call; always closes the circuit."""
        with self._lock:
            self._consecutive_failures = 0
            self._last_failure_time = None
            self._trial_in_flight = False
            self._transition_to(CircuitState.CLOSED)

    def record_failure(self) -> None:
        """Record a failed call."""
        with self._lock:
            self._consecutive_failures += 1
            self._last_failure_time = self.clock()

            if self._state is CircuitState.HALF_OPEN:
                # Any failure in half-open reopens the circuit
                self._trial_in_flight = False
                self._transition_to(CircuitState.OPEN)
            elif (
                self._state is CircuitState.CLOSED
                and self._consecutive_failures >= self.failure_threshold
            ):
                self._transition_to(CircuitState.OPEN)

    def release_trial(self, permit: Permit) -> bool:
        """Free the half-open trial slot without recording an outcome.

        Used when a call was cancelled before it finished. Only the permit
        holding the current trial frees the slot; calls admitted while
        closed, or stale trials, release nothing.

        Returns:
            True if the slot was freed
        """
        with self._lock:
            if (
                permit.trial_id is None
                or not self._trial_in_flight
                or permit.trial_id != self._trial_id
            ):
                return False
            self._trial_in_flight = False
            return True

    def time_until_half_open(self) -> float | None:
        """Seconds until a trial will be admitted, or None when not open."""
        with self._lock:
            self._check_state_transition()
            return self._time_until_half_open()

    def _time_until_half_open(self) -> float | None:
        if self._state is not CircuitState.OPEN or self._last_failure_time is None:
            return None
        elapsed = self.clock() - self._last_failure_time
        return max(0.0, self.open_duration - elapsed)

    def rejection(self) -> CircuitOpenError:
        """Build the error reported for a rejected call."""
        retry_in = self.time_until_half_open()
        return CircuitOpenError(
            f"Circuit '{self.name}' is open, rejecting request",
            retry_in=retry_in,
        )

    def snapshot(self) -> CircuitSnapshot:
        """Consistent view of the breaker's state."""
        with self._lock:
            self._check_state_transition()
            return CircuitSnapshot(
                name=self.name,
                state=self._state,
                consecutive_failures=self._consecutive_failures,
                failure_threshold=self.failure_threshold,
                open_duration=self.open_duration,
                last_failure_time=self._last_failure_time,
                time_until_half_open=self._time_until_half_open(),
                rejected_requests=self._rejected_requests,
                state_changes=self._state_changes,
            )

    def reset(self) -> None:
        """Reset circuit to closed state."""
        with self._lock:
            self._consecutive_failures = 0
            self._last_failure_time = None
            self._trial_in_flight = False
            self._transition_to(CircuitState.CLOSED)

    def force_open(self) -> None:
        """Force circuit to open state (for testing/maintenance)."""
        with self._lock:
            self._consecutive_failures = max(self._consecutive_failures, self.failure_threshold)
            self._last_failure_time = self.clock()
            self._transition_to(CircuitState.OPEN)

    async def call_async(
        self, func: Callable[..., Any], *args: Any, **kwargs: Any
    ) -> Any:
        """Execute an async function through the circuit breaker.

        Raises:
            CircuitOpenError: If the call is rejected
        """
        permit = self.acquire()
        if not permit:
            raise self.rejection()

        try:
            result = await func(*args, **kwargs)
        except Exception:
            self.record_failure()
            raise
        except BaseException:
            self.release_trial(permit)
            raise
        self.record_success()
        return result


__all__ = [
    "CircuitBreaker",
    "CircuitSnapshot",
    "CircuitState",
    "Permit",
    "StateChangeListener",
]
