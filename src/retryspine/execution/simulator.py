"""Simulated remote endpoint for demos and tests.

Each ``ScenarioKind`` reproduces one failure mode of a flaky HTTP API:

    timeout       70% of attempts time out
    server-error  60% of attempts fail with 500
    rate-limit    the first two attempts get 429, later ones succeed
    unauthorized  always 401
    not-found     always 404
    bad-request   always 400
    success       always succeeds

Randomness comes from an injectable ``random.Random`` (or a seed), so a
scenario run is reproducible.
"""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from retryspine.core.errors import (
    ClientError,
    RateLimitedError,
    RequestTimeoutError,
    TransientServerError,
)


class ScenarioKind(str, Enum):
    """Failure modes the simulated endpoint can reproduce."""

    TIMEOUT = "timeout"
    SERVER_ERROR = "server-error"
    RATE_LIMIT = "rate-limit"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not-found"
    BAD_REQUEST = "bad-request"
    SUCCESS = "success"


TIMEOUT_FAILURE_RATE = 0.7
SERVER_ERROR_FAILURE_RATE = 0.6
RATE_LIMITED_ATTEMPTS = 2


class SimulatedEndpoint:
    """Async callable standing in for a remote API.

    Args:
        scenario: Failure mode to reproduce
        rng: Random source (takes precedence over ``seed``)
        seed: Seed for a private random source
        latency_range: (min, max) simulated latency in seconds
        sleep: Coroutine used to simulate latency
        clock: Time source stamped into successful payloads
        retry_after: Seconds reported on rate-limit responses
        failure_rate: Override the scenario's failure probability
            (timeout and server-error only)
    """

    def __init__(
        self,
        scenario: ScenarioKind | str = ScenarioKind.SUCCESS,
        *,
        rng: random.Random | None = None,
        seed: int | None = None,
        latency_range: tuple[float, float] = (0.5, 2.5),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        retry_after: float | None = None,
        failure_rate: float | None = None,
    ):
        low, high = latency_range
        if low < 0 or high < low:
            raise ValueError(f"invalid latency_range: {latency_range}")
        if failure_rate is not None and not 0.0 <= failure_rate <= 1.0:
            raise ValueError("failure_rate must be between 0 and 1")
        self.scenario = ScenarioKind(scenario)
        self.latency_range = (low, high)
        self.retry_after = retry_after
        self.failure_rate = failure_rate
        self._rng = rng or random.Random(seed)
        self._sleep = sleep
        self._clock = clock
        self.calls = 0

    def reset(self) -> None:
        self.calls = 0

    async def __call__(self) -> dict[str, Any]:
        attempt = self.calls
        self.calls += 1

        low, high = self.latency_range
        if high > 0:
            await self._sleep(self._rng.uniform(low, high))

        scenario = self.scenario
        if scenario is ScenarioKind.TIMEOUT:
            if self._fails(TIMEOUT_FAILURE_RATE):
                raise RequestTimeoutError("Request timeout")
            return self._payload("Success after timeout risk")

        if scenario is ScenarioKind.SERVER_ERROR:
            if self._fails(SERVER_ERROR_FAILURE_RATE):
                raise TransientServerError("Internal Server Error", http_status=500)
            return self._payload("Server recovered")

        if scenario is ScenarioKind.RATE_LIMIT:
            if attempt < RATE_LIMITED_ATTEMPTS:
                raise RateLimitedError("Too Many Requests", retry_after=self.retry_after)
            return self._payload("Rate limit cleared")

        if scenario is ScenarioKind.UNAUTHORIZED:
            raise ClientError("Unauthorized - Invalid credentials", http_status=401)
        if scenario is ScenarioKind.NOT_FOUND:
            raise ClientError("Not Found - Resource does not exist", http_status=404)
        if scenario is ScenarioKind.BAD_REQUEST:
            raise ClientError("Bad Request - Invalid request format", http_status=400)

        return self._payload("Default success response")

    def _fails(self, default_rate: float) -> bool:
        rate = default_rate if self.failure_rate is None else self.failure_rate
        return self._rng.random() < rate

    def _payload(self, data: str) -> dict[str, Any]:
        return {
            "data": data,
            "scenario": self.scenario.value,
            "attempt": self.calls,
            "timestamp": self._clock(),
        }


def fallback_payload(clock: Callable[[], float] = time.time) -> dict[str, Any]:
    """Static response served when the primary endpoint is unavailable."""
    return {
        "data": "Default cached or static data",
        "source": "fallback",
        "fallback": True,
        "timestamp": clock(),
    }


__all__ = ["ScenarioKind", "SimulatedEndpoint", "fallback_payload"]
