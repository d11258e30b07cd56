"""Retryspine Execution -- retries, backoff and circuit breaking.

ARCHITECTURE
────────────
::

    RetryExecutor.execute(operation, policy)
      ├── CircuitBreaker       ─ acquire / record_success / record_failure
      ├── classify()           ─ retryable vs non-retryable by ErrorKind
      ├── compute_delay()      ─ exponential / linear / fixed backoff
      ├── StatisticsAggregator ─ counters, latencies, error histogram
      └── EventBus             ─ attempt.*, retry.*, circuit.*, request.*

    SimulatedEndpoint          ─ scripted flaky API for demos and tests
"""

from retryspine.execution.backoff import BackoffKind, apply_jitter, compute_delay
from retryspine.execution.circuit_breaker import (
    CircuitBreaker,
    CircuitSnapshot,
    CircuitState,
    Permit,
)
from retryspine.execution.classifier import Classification, classify, error_kind, is_retryable
from retryspine.execution.executor import RetryExecutor
from retryspine.execution.models import (
    AttemptFailure,
    AttemptOutcome,
    AttemptSuccess,
    CurrentRequestView,
    RequestStatus,
)
from retryspine.execution.policy import RetryPolicy
from retryspine.execution.simulator import ScenarioKind, SimulatedEndpoint
from retryspine.execution.statistics import StatisticsAggregator, StatisticsSnapshot

__all__ = [
    "AttemptFailure",
    "AttemptOutcome",
    "AttemptSuccess",
    "BackoffKind",
    "CircuitBreaker",
    "CircuitSnapshot",
    "CircuitState",
    "Permit",
    "Classification",
    "CurrentRequestView",
    "RequestStatus",
    "RetryExecutor",
    "RetryPolicy",
    "ScenarioKind",
    "SimulatedEndpoint",
    "StatisticsAggregator",
    "StatisticsSnapshot",
    "apply_jitter",
    "classify",
    "compute_delay",
    "error_kind",
    "is_retryable",
]
