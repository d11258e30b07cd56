"""Tests for RetryPolicy."""

import dataclasses

import pytest

from retryspine.core.settings import ResilienceSettings
from retryspine.execution.backoff import BackoffKind
from retryspine.execution.policy import RetryPolicy


class TestRetryPolicy:
    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_retries == 3
        assert policy.base_delay == 1.0
        assert policy.backoff_kind is BackoffKind.EXPONENTIAL
        assert policy.request_timeout is None
        assert policy.max_attempts == 4

    def test_no_retry(self):
        policy = RetryPolicy.no_retry()
        assert policy.max_retries == 0
        assert policy.max_attempts == 1

    def test_string_backoff_coerced(self):
        assert RetryPolicy(backoff_kind="linear").backoff_kind is BackoffKind.LINEAR
        assert RetryPolicy(backoff_kind="whatever").backoff_kind is BackoffKind.FIXED

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            RetryPolicy().max_retries = 10

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_retries": -1},
            {"base_delay": -0.5},
            {"request_timeout": 0},
            {"jitter": 1.5},
            {"max_delay": -1.0},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)

    def test_from_settings(self):
        settings = ResilienceSettings(
            max_retries=1,
            base_delay=0.5,
            backoff_kind="fixed",
            request_timeout=3.0,
        )
        policy = RetryPolicy.from_settings(settings)
        assert policy == RetryPolicy(
            max_retries=1,
            base_delay=0.5,
            backoff_kind=BackoffKind.FIXED,
            request_timeout=3.0,
        )
