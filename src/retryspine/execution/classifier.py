"""Error classification: retryable or not.

Decisions are made on the structured ``ErrorKind`` labels an error carries,
never on its message text.  A ``ResilienceError`` contributes its ``kind``
and, when present, the kind derived from its ``http_status``; built-in
exceptions are mapped by type.  Precedence:

1. any label in the client/auth set (400, 401, 403, 404, 422) -> NON_RETRYABLE
2. any label in the transient set (timeout, 429, 5xx, network, connection)
   -> RETRYABLE
3. anything else -> NON_RETRYABLE (unknown errors never loop)
"""

from __future__ import annotations

import asyncio
from enum import Enum

from retryspine.core.errors import ErrorKind, ResilienceError


class Classification(str, Enum):
    """Outcome of classifying a failure."""

    RETRYABLE = "retryable"
    NON_RETRYABLE = "non_retryable"


NON_RETRYABLE_KINDS: frozenset[ErrorKind] = frozenset({
    ErrorKind.BAD_REQUEST,
    ErrorKind.UNAUTHORIZED,
    ErrorKind.FORBIDDEN,
    ErrorKind.NOT_FOUND,
    ErrorKind.UNPROCESSABLE,
})

RETRYABLE_KINDS: frozenset[ErrorKind] = frozenset({
    ErrorKind.TIMEOUT,
    ErrorKind.RATE_LIMITED,
    ErrorKind.INTERNAL_SERVER_ERROR,
    ErrorKind.BAD_GATEWAY,
    ErrorKind.SERVICE_UNAVAILABLE,
    ErrorKind.GATEWAY_TIMEOUT,
    ErrorKind.NETWORK,
    ErrorKind.CONNECTION,
})


def error_labels(error: BaseException) -> frozenset[ErrorKind]:
    """Return every ``ErrorKind`` label the error carries."""
    if isinstance(error, ResilienceError):
        labels = {error.kind}
        if error.http_status is not None:
            labels.add(ErrorKind.from_status(error.http_status))
        return frozenset(labels)
    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return frozenset({ErrorKind.TIMEOUT})
    if isinstance(error, ConnectionError):
        return frozenset({ErrorKind.CONNECTION})
    return frozenset({ErrorKind.UNKNOWN})


def error_kind(error: BaseException) -> ErrorKind:
    """Primary kind of an error, used as the statistics histogram key."""
    if isinstance(error, ResilienceError):
        return error.kind
    (label,) = error_labels(error)
    return label


def classify(error: BaseException) -> Classification:
    """Decide whether a failed attempt may be retried."""
    labels = error_labels(error)
    if labels & NON_RETRYABLE_KINDS:
        return Classification.NON_RETRYABLE
    if labels & RETRYABLE_KINDS:
        return Classification.RETRYABLE
    return Classification.NON_RETRYABLE


def is_retryable(error: BaseException) -> bool:
    return classify(error) is Classification.RETRYABLE


__all__ = [
    "Classification",
    "NON_RETRYABLE_KINDS",
    "RETRYABLE_KINDS",
    "classify",
    "error_kind",
    "error_labels",
    "is_retryable",
]
