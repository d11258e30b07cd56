"""Aggregate health statistics for a guarded target.

Counts top-level requests and their outcomes, retries, per-kind failure
histogram and response times.  Every mutation happens under one lock, and
``snapshot()`` hands out an immutable copy that callers can poll freely.

Counting rules:
    total_requests       completed calls: successful + failed, always
    successful_requests  calls that returned Ok
    failed_requests      calls that returned Err (including circuit rejections)
    cancelled_requests   calls cancelled by their caller (not in total_requests)
    total_attempts       operation invocations
    total_retries        backoff waits scheduled
    error_type_counts    one per failed attempt, keyed by ErrorKind value
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from retryspine.core.errors import ErrorKind


@dataclass(frozen=True)
class StatisticsSnapshot:
    """Immutable copy of the aggregator's counters."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    cancelled_requests: int = 0
    rejected_requests: int = 0
    total_attempts: int = 0
    total_retries: int = 0
    response_times: tuple[float, ...] = ()
    error_type_counts: dict[str, int] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        """Fraction of requests that succeeded (0.0 when none were made)."""
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests

    @property
    def average_latency(self) -> float:
        """Mean response time in seconds (0.0 when none were recorded)."""
        if not self.response_times:
            return 0.0
        return sum(self.response_times) / len(self.response_times)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "cancelled_requests": self.cancelled_requests,
            "rejected_requests": self.rejected_requests,
            "total_attempts": self.total_attempts,
            "total_retries": self.total_retries,
            "success_rate": self.success_rate,
            "average_latency": self.average_latency,
            "error_type_counts": dict(self.error_type_counts),
        }


class StatisticsAggregator:
    """Thread-safe, monotonic counters for one retry executor.

    Args:
        response_time_window: Keep only the most recent N response times
            (None keeps all of them)
    """

    def __init__(self, response_time_window: int | None = 1000):
        if response_time_window is not None and response_time_window < 1:
            raise ValueError("response_time_window must be > 0")
        self._lock = threading.Lock()
        self._total_requests = 0
        self._successful_requests = 0
        self._failed_requests = 0
        self._cancelled_requests = 0
        self._rejected_requests = 0
        self._total_attempts = 0
        self._total_retries = 0
        self._response_times: deque[float] = deque(maxlen=response_time_window)
        self._error_type_counts: dict[str, int] = {}

    def record_attempt_start(self) -> None:
        """Count one invocation of the guarded operation."""
        with self._lock:
            self._total_attempts += 1

    def record_success(self, latency: float) -> None:
        """Count a successful request and its response time in seconds."""
        with self._lock:
            self._total_requests += 1
            self._successful_requests += 1
            self._response_times.append(max(0.0, latency))

    def record_failure(self, kind: ErrorKind | str) -> None:
        """Count one failed attempt under its error kind."""
        key = kind.value if isinstance(kind, ErrorKind) else str(kind)
        with self._lock:
            self._error_type_counts[key] = self._error_type_counts.get(key, 0) + 1

    def record_retry_scheduled(self) -> None:
        with self._lock:
            self._total_retries += 1

    def record_request_failed(self, *, rejected: bool = False) -> None:
        """Count a request that ended in a terminal error."""
        with self._lock:
            self._total_requests += 1
            self._failed_requests += 1
            if rejected:
                self._rejected_requests += 1

    def record_request_cancelled(self) -> None:
        """Count an abandoned call; it never reaches ``total_requests``."""
        with self._lock:
            self._cancelled_requests += 1

    def success_rate(self) -> float:
        return self.snapshot().success_rate

    def average_latency(self) -> float:
        return self.snapshot().average_latency

    def snapshot(self) -> StatisticsSnapshot:
        """Immutable copy of every counter."""
        with self._lock:
            return StatisticsSnapshot(
                total_requests=self._total_requests,
                successful_requests=self._successful_requests,
                failed_requests=self._failed_requests,
                cancelled_requests=self._cancelled_requests,
                rejected_requests=self._rejected_requests,
                total_attempts=self._total_attempts,
                total_retries=self._total_retries,
                response_times=tuple(self._response_times),
                error_type_counts=dict(self._error_type_counts),
            )


__all__ = ["StatisticsAggregator", "StatisticsSnapshot"]
