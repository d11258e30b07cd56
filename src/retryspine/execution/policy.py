"""Per-call retry policy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from retryspine.execution.backoff import BackoffKind

if TYPE_CHECKING:
    from retryspine.core.settings import ResilienceSettings


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry configuration for one ``execute`` call.

    ``max_retries`` counts retries, not attempts: ``max_retries=3`` means
    up to four attempts in total.

    Attributes:
        max_retries: Retries allowed after the first attempt
        base_delay: Base backoff delay in seconds
        backoff_kind: exponential | linear | fixed
        request_timeout: Per-attempt deadline in seconds (None = no deadline)
        jitter: Fractional jitter applied to each delay (0 = deterministic)
        max_delay: Optional cap on a single delay in seconds
    """

    max_retries: int = 3
    base_delay: float = 1.0
    backoff_kind: BackoffKind = BackoffKind.EXPONENTIAL
    request_timeout: float | None = None
    jitter: float = 0.0
    max_delay: float | None = None

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")
        if not 0.0 <= self.jitter <= 1.0:
            raise ValueError("jitter must be between 0 and 1")
        if self.max_delay is not None and self.max_delay < 0:
            raise ValueError("max_delay must be >= 0")
        object.__setattr__(self, "backoff_kind", BackoffKind.parse(self.backoff_kind))

    @property
    def max_attempts(self) -> int:
        """Total attempts this policy allows."""
        return self.max_retries + 1

    @classmethod
    def no_retry(cls) -> RetryPolicy:
        """Factory for a single-attempt policy."""
        return cls(max_retries=0)

    @classmethod
    def from_settings(cls, settings: ResilienceSettings) -> RetryPolicy:
        """Factory from ``ResilienceSettings``."""
        return cls(
            max_retries=settings.max_retries,
            base_delay=settings.base_delay,
            backoff_kind=BackoffKind.parse(settings.backoff_kind),
            request_timeout=settings.request_timeout,
            jitter=settings.jitter,
            max_delay=settings.max_delay,
        )


__all__ = ["RetryPolicy"]
