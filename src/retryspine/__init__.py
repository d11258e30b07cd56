"""
Retryspine - resilient request execution for flaky remote dependencies.

- retryspine.core: errors, Result, logging, settings, events
- retryspine.execution: RetryExecutor, CircuitBreaker, backoff, statistics
- retryspine.cli: ``retryspine`` command-line demo harness
"""

__version__ = "0.1.0"

from retryspine.core import *  # noqa
from retryspine.execution import *  # noqa
