"""Retryspine Core -- errors, results, logging, settings and events.

Architecture::

    errors.py          Structured error hierarchy (ResilienceError, ErrorKind)
    result.py          Result[T] envelope (Ok / Err)
    logging.py         structlog configuration + LogContext
    settings.py        pydantic-settings defaults (RETRYSPINE_* env vars)
    events/            Event model, EventBus protocol, in-memory bus

Nothing in ``core`` depends on ``retryspine.execution``.
"""

from retryspine.core.errors import (
    CircuitOpenError,
    ClientError,
    ErrorKind,
    NetworkError,
    RateLimitedError,
    RequestTimeoutError,
    ResilienceError,
    TerminalError,
    TransientServerError,
    UnclassifiedError,
)
from retryspine.core.logging import LogContext, configure_logging, get_logger
from retryspine.core.result import Err, Ok, Result
from retryspine.core.settings import ResilienceSettings, clear_settings_cache, get_settings

__all__ = [
    # errors
    "CircuitOpenError",
    "ClientError",
    "ErrorKind",
    "NetworkError",
    "RateLimitedError",
    "RequestTimeoutError",
    "ResilienceError",
    "TerminalError",
    "TransientServerError",
    "UnclassifiedError",
    # result
    "Ok",
    "Err",
    "Result",
    # logging
    "LogContext",
    "configure_logging",
    "get_logger",
    # settings
    "ResilienceSettings",
    "clear_settings_cache",
    "get_settings",
]
