"""Backoff delay computation.

Maps a zero-based attempt index to the wait before the next attempt:

    exponential  base_delay * 2 ** attempt
    linear       base_delay * (attempt + 1)
    fixed        base_delay

An unrecognised kind is treated as ``fixed``. Delays are deterministic;
jitter is opt-in through ``apply_jitter`` so tests can reproduce exact
schedules.

Example:
    >>> from retryspine.execution.backoff import BackoffKind, compute_delay
    >>> [compute_delay(i, 1.0, BackoffKind.EXPONENTIAL) for i in range(4)]
    [1.0, 2.0, 4.0, 8.0]
"""

from __future__ import annotations

import math
import random
from enum import Enum

from retryspine.core.logging import get_logger

logger = get_logger(__name__)


class BackoffKind(str, Enum):
    """Supported backoff policies."""

    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    FIXED = "fixed"

    @classmethod
    def parse(cls, value: BackoffKind | str) -> BackoffKind:
        """Coerce a config value, falling back to ``FIXED`` for unknown names."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            logger.warning("unknown_backoff_kind", value=value, fallback=cls.FIXED.value)
            return cls.FIXED


def compute_delay(
    attempt: int,
    base_delay: float,
    kind: BackoffKind | str = BackoffKind.EXPONENTIAL,
    *,
    max_delay: float | None = None,
) -> float:
    """Calculate the delay before the retry following ``attempt``.

    Args:
        attempt: Zero-based index of the attempt that just failed
        base_delay: Base delay in seconds
        kind: Backoff policy; unknown values behave as ``fixed``
        max_delay: Optional cap in seconds

    Returns:
        Delay in seconds, never negative (``inf`` only when an uncapped
        exponential delay exceeds the float range)
    """
    if attempt < 0:
        raise ValueError(f"attempt must be >= 0, got {attempt}")

    base = max(0.0, base_delay)
    policy = BackoffKind.parse(kind)

    if policy is BackoffKind.EXPONENTIAL:
        try:
            delay = math.ldexp(base, attempt)
        except OverflowError:
            # Huge attempt indexes saturate instead of raising
            delay = math.inf
    elif policy is BackoffKind.LINEAR:
        delay = base * (attempt + 1)
    else:
        delay = base

    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay


def apply_jitter(
    delay: float,
    jitter_range: float,
    rng: random.Random | None = None,
) -> float:
    """Spread ``delay`` by +/- ``jitter_range`` (a fraction of the delay).

    Prevents thundering herd when many callers back off in lockstep.
    """
    if jitter_range <= 0 or delay <= 0 or math.isinf(delay):
        return delay
    source = rng or random
    jitter_amount = delay * jitter_range
    return max(0.0, delay + source.uniform(-jitter_amount, jitter_amount))


__all__ = ["BackoffKind", "compute_delay", "apply_jitter"]
