"""Value types produced by the retry executor.

AttemptOutcome
    ``AttemptSuccess | AttemptFailure``; produced once per attempt, never
    mutated, fed to statistics/breaker/events and then discarded.

CurrentRequestView
    Snapshot of the most recently updated top-level call, recomputed on
    every attempt boundary for dashboards and progress bars.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Generic, TypeVar

from retryspine.core.errors import ErrorKind

T = TypeVar("T")


class RequestStatus(str, Enum):
    """Lifecycle of a top-level call as seen by a UI."""

    READY = "ready"
    LOADING = "loading"
    RETRYING = "retrying"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class AttemptSuccess(Generic[T]):
    """An attempt that returned a value."""

    result: T
    latency: float


@dataclass(frozen=True)
class AttemptFailure:
    """An attempt that raised."""

    kind: ErrorKind
    message: str
    latency: float
    error: BaseException


AttemptOutcome = AttemptSuccess[Any] | AttemptFailure


@dataclass(frozen=True)
class CurrentRequestView:
    """UI-facing snapshot of the request in progress.

    Attributes:
        status: ready | loading | retrying | success | failed
        attempt: 1-based number of the attempt in progress (0 before start)
        max_attempts: Attempts the policy allows
        next_retry_at: Clock reading when the pending retry fires, if any
        request_id: Correlation ID of the call this view describes
    """

    status: RequestStatus = RequestStatus.READY
    attempt: int = 0
    max_attempts: int = 0
    next_retry_at: float | None = None
    request_id: str | None = None

    @property
    def progress(self) -> float:
        """Fraction of the attempt budget used so far."""
        if self.max_attempts <= 0:
            return 0.0
        return self.attempt / self.max_attempts

    def next_retry_in(self, now: float) -> float | None:
        """Seconds until the pending retry, or None when none is scheduled."""
        if self.next_retry_at is None:
            return None
        return max(0.0, self.next_retry_at - now)

    def evolve(self, **changes: Any) -> CurrentRequestView:
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "attempt": self.attempt,
            "max_attempts": self.max_attempts,
            "next_retry_at": self.next_retry_at,
            "progress": self.progress,
            "request_id": self.request_id,
        }


__all__ = [
    "AttemptFailure",
    "AttemptOutcome",
    "AttemptSuccess",
    "CurrentRequestView",
    "RequestStatus",
]
