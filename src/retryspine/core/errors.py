"""
Structured error types for guarded remote operations.

Every failure that flows through the retry executor carries a canonical
``ErrorKind`` tag attached at the point it is raised.  Classification,
statistics and logging all work from that tag, never from the human-readable
message.

Manifesto:
    - **Tagged, not parsed:** The kind is data on the error, not a regex
      over ``str(error)``
    - **Typed hierarchy:** One subclass per failure family so callers can
      ``except`` precisely
    - **Error chaining:** The transport exception survives as ``cause``
    - **Serializable:** ``to_dict()`` feeds structured logs and events

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                      ResilienceError                             │
        │          (kind, http_status, retry_after, cause)                 │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  TransientServerError   RateLimitedError    RequestTimeoutError  │
        │  (5xx)                  (429, retry_after)  (timeout)            │
        │                                                                  │
        │  NetworkError           ClientError         UnclassifiedError    │
        │  (network/connection)   (4xx except 429)    (unknown)            │
        │                                                                  │
        │  CircuitOpenError       TerminalError                            │
        │  (fast-fail)            (what execute() returns inside Err)      │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = TransientServerError("upstream exploded", http_status=503)
    >>> error.kind
    <ErrorKind.SERVICE_UNAVAILABLE: 'service_unavailable'>
    >>> RateLimitedError(retry_after=2.5).retry_after
    2.5

Tags:
    error-handling, exception-hierarchy, error-kind, retryspine
"""

from __future__ import annotations

import builtins
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Canonical failure labels attached to every failed attempt.

    The values double as keys of the error-type histogram in statistics.
    """

    # Client / auth (never retried)
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    UNPROCESSABLE = "unprocessable"

    # Transient
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    INTERNAL_SERVER_ERROR = "internal_server_error"
    BAD_GATEWAY = "bad_gateway"
    SERVICE_UNAVAILABLE = "service_unavailable"
    GATEWAY_TIMEOUT = "gateway_timeout"
    NETWORK = "network"
    CONNECTION = "connection"

    # Local
    CIRCUIT_OPEN = "circuit_open"
    UNKNOWN = "unknown"

    @classmethod
    def from_status(cls, status: int | None) -> ErrorKind:
        """Map an HTTP status code to a kind.

        Unmapped 5xx codes become ``INTERNAL_SERVER_ERROR``, unmapped 4xx
        codes become ``BAD_REQUEST``, anything else ``UNKNOWN``.
        """
        if status is None:
            return cls.UNKNOWN
        if status in _STATUS_KINDS:
            return _STATUS_KINDS[status]
        if 500 <= status < 600:
            return cls.INTERNAL_SERVER_ERROR
        if 400 <= status < 500:
            return cls.BAD_REQUEST
        return cls.UNKNOWN


_STATUS_KINDS: dict[int, ErrorKind] = {
    400: ErrorKind.BAD_REQUEST,
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    422: ErrorKind.UNPROCESSABLE,
    429: ErrorKind.RATE_LIMITED,
    500: ErrorKind.INTERNAL_SERVER_ERROR,
    502: ErrorKind.BAD_GATEWAY,
    503: ErrorKind.SERVICE_UNAVAILABLE,
    504: ErrorKind.GATEWAY_TIMEOUT,
}


class ResilienceError(Exception):
    """
    Base exception for every failure the executor understands.

    Subclasses set ``default_kind`` so the common case needs only a message.
    An explicit ``http_status`` refines the kind when no ``kind`` is passed.

    Attributes:
        message: Human-readable description (never parsed)
        kind: Canonical ``ErrorKind`` tag
        http_status: Status code reported by the transport, if any
        retry_after: Minimum seconds the remote asked us to wait
        cause: Underlying transport exception
    """

    default_kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind | None = None,
        http_status: int | None = None,
        retry_after: float | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        if kind is None and http_status is not None:
            kind = ErrorKind.from_status(http_status)
        self.kind = kind or self.default_kind
        self.http_status = http_status
        self.retry_after = retry_after
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "kind": self.kind.value,
        }
        if self.http_status is not None:
            result["http_status"] = self.http_status
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, kind={self.kind.value})"


class TransientServerError(ResilienceError):
    """5xx-class failure; usually clears on its own."""

    default_kind = ErrorKind.INTERNAL_SERVER_ERROR


class RateLimitedError(ResilienceError):
    """429 Too Many Requests, optionally with a server-suggested wait."""

    default_kind = ErrorKind.RATE_LIMITED

    def __init__(
        self,
        message: str = "Too many requests",
        *,
        retry_after: float | None = None,
        **kwargs: Any,
    ):
        kwargs.setdefault("http_status", 429)
        super().__init__(message, retry_after=retry_after, **kwargs)


class ClientError(ResilienceError):
    """4xx-class failure other than 429. The request itself is wrong."""

    default_kind = ErrorKind.BAD_REQUEST


class RequestTimeoutError(ResilienceError, builtins.TimeoutError):
    """An attempt exceeded its deadline."""

    default_kind = ErrorKind.TIMEOUT

    def __init__(self, message: str = "Request timeout", *, timeout: float | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.timeout = timeout


class NetworkError(ResilienceError):
    """Transport-level failure (DNS, reset, refused)."""

    default_kind = ErrorKind.NETWORK


class UnclassifiedError(ResilienceError):
    """Failure with no recognised signature. Treated as non-retryable."""

    default_kind = ErrorKind.UNKNOWN


class CircuitOpenError(ResilienceError):
    """Raised when the breaker rejects a call without contacting the remote.

    ``retry_in`` is the number of seconds until the breaker will admit a
    half-open trial, or ``None`` when a trial is already in flight.
    """

    default_kind = ErrorKind.CIRCUIT_OPEN

    def __init__(
        self,
        message: str = "Circuit breaker is open",
        *,
        retry_in: float | None = None,
    ):
        super().__init__(message)
        self.retry_in = retry_in

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.retry_in is not None:
            result["retry_in"] = self.retry_in
        return result


class TerminalError(ResilienceError):
    """Final failure of a top-level call, carried inside ``Err``.

    Wraps the last underlying error together with the number of attempts
    that were actually made and whether the circuit breaker was the
    proximate cause.
    """

    def __init__(
        self,
        last_error: BaseException,
        *,
        attempts: int,
        kind: ErrorKind,
        circuit_open: bool = False,
    ):
        if circuit_open:
            message = f"Request blocked by open circuit after {attempts} attempts: {last_error}"
        else:
            message = f"Request failed after {attempts} attempts: {last_error}"
        super().__init__(message, kind=kind, cause=last_error)
        self.last_error = last_error
        self.attempts = attempts
        self.circuit_open = circuit_open

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["attempts"] = self.attempts
        result["circuit_open"] = self.circuit_open
        return result


__all__ = [
    "ErrorKind",
    "ResilienceError",
    "TransientServerError",
    "RateLimitedError",
    "ClientError",
    "RequestTimeoutError",
    "NetworkError",
    "UnclassifiedError",
    "CircuitOpenError",
    "TerminalError",
]
