"""
Shared pytest fixtures and configuration for retryspine tests.

This module provides:
- A controllable clock and a sleep that advances it instead of waiting
- Scripted operations that fail or succeed in a fixed order
- Settings cache cleanup for test isolation

Usage:
    Fixtures are auto-discovered by pytest. Use them as function arguments:

    async def test_retries(make_executor, scripted):
        executor = make_executor()
        op = scripted(TransientServerError("boom"), "ok")
        ...
"""

import os
import sys
from pathlib import Path
from typing import Any, Generator

import pytest

# Ensure retryspine package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from retryspine.core.events.memory import InMemoryEventBus
from retryspine.core.settings import clear_settings_cache
from retryspine.execution.executor import RetryExecutor


# =============================================================================
# Time Control
# =============================================================================


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Records requested delays and advances the clock instead of waiting."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        self.clock.advance(delay)


class ScriptedOperation:
    """Async operation replaying a fixed script of outcomes.

    Exceptions in the script are raised, anything else is returned.  The
    last entry repeats once the script runs out.  ``call_times`` holds the
    clock reading at each invocation.
    """

    def __init__(self, clock: FakeClock, *outcomes: Any):
        self.clock = clock
        self.outcomes = list(outcomes)
        self.calls = 0
        self.call_times: list[float] = []

    async def __call__(self) -> Any:
        self.call_times.append(self.clock())
        outcome = self.outcomes[min(self.calls, len(self.outcomes) - 1)]
        self.calls += 1
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_sleep(clock: FakeClock) -> FakeSleep:
    return FakeSleep(clock)


@pytest.fixture
def scripted(clock: FakeClock):
    """Factory: ``scripted(error, error, "value")``."""

    def factory(*outcomes: Any) -> ScriptedOperation:
        return ScriptedOperation(clock, *outcomes)

    return factory


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest.fixture
def make_executor(clock: FakeClock, fake_sleep: FakeSleep, event_bus: InMemoryEventBus):
    """Factory for executors wired to the fake clock, sleep and bus."""

    def factory(name: str = "test", **kwargs: Any) -> RetryExecutor:
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("sleep", fake_sleep)
        kwargs.setdefault("event_bus", event_bus)
        return RetryExecutor(name, **kwargs)

    return factory


# =============================================================================
# Settings Cleanup
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings_fixture(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """
    Clear RETRYSPINE_* env vars and the settings cache around each test.

    No test can affect another through cached settings.
    """
    for key in list(os.environ):
        if key.startswith("RETRYSPINE_"):
            monkeypatch.delenv(key, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()
