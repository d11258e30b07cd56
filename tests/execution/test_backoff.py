"""Tests for backoff delay computation."""

import math
import random

import pytest

from retryspine.execution.backoff import BackoffKind, apply_jitter, compute_delay


class TestComputeDelay:
    """Tests for compute_delay."""

    def test_exponential(self):
        """Delay doubles per attempt."""
        delays = [compute_delay(i, 1.0, BackoffKind.EXPONENTIAL) for i in range(5)]
        assert delays == [1.0, 2.0, 4.0, 8.0, 16.0]

    def test_linear(self):
        """Delay grows by base_delay per attempt."""
        delays = [compute_delay(i, 1.0, BackoffKind.LINEAR) for i in range(4)]
        assert delays == [1.0, 2.0, 3.0, 4.0]

    def test_fixed(self):
        delays = [compute_delay(i, 1.5, BackoffKind.FIXED) for i in range(4)]
        assert delays == [1.5, 1.5, 1.5, 1.5]

    def test_string_kind(self):
        assert compute_delay(2, 0.5, "exponential") == 2.0
        assert compute_delay(2, 0.5, "LINEAR") == 1.5

    def test_unknown_kind_behaves_as_fixed(self):
        """Unrecognised policies never raise; they fall back to base_delay."""
        assert compute_delay(3, 2.0, "fibonacci") == 2.0

    def test_default_is_exponential(self):
        assert compute_delay(3, 1.0) == 8.0

    def test_max_delay_caps(self):
        """Test delay capped at max_delay."""
        assert compute_delay(0, 10.0, max_delay=30.0) == 10.0
        assert compute_delay(1, 10.0, max_delay=30.0) == 20.0
        assert compute_delay(2, 10.0, max_delay=30.0) == 30.0
        assert compute_delay(5, 10.0, max_delay=30.0) == 30.0

    def test_zero_base_delay(self):
        assert compute_delay(4, 0.0) == 0.0

    def test_negative_attempt_rejected(self):
        with pytest.raises(ValueError):
            compute_delay(-1, 1.0)

    def test_never_negative(self):
        assert compute_delay(2, -5.0) == 0.0

    def test_large_attempt_index_does_not_overflow(self):
        """Exponential growth past the float range saturates."""
        assert compute_delay(1100, 0.0) == 0.0
        assert compute_delay(1100, 1.0, max_delay=60.0) == 60.0
        assert compute_delay(5000, 0.5) == math.inf

    def test_large_attempt_index_linear(self):
        assert compute_delay(1100, 0.1, BackoffKind.LINEAR) == pytest.approx(110.1)


class TestBackoffKindParse:
    def test_parse_enum_passthrough(self):
        assert BackoffKind.parse(BackoffKind.LINEAR) is BackoffKind.LINEAR

    def test_parse_case_insensitive(self):
        assert BackoffKind.parse("Exponential") is BackoffKind.EXPONENTIAL

    def test_parse_unknown(self):
        assert BackoffKind.parse("random") is BackoffKind.FIXED


class TestApplyJitter:
    """Tests for apply_jitter."""

    def test_zero_jitter_is_identity(self):
        assert apply_jitter(4.0, 0.0) == 4.0

    def test_zero_delay_is_identity(self):
        assert apply_jitter(0.0, 0.5) == 0.0

    def test_infinite_delay_is_identity(self):
        assert apply_jitter(math.inf, 0.5, random.Random(3)) == math.inf

    def test_jitter_within_bounds(self):
        """Jittered delay stays within +/- range of the base."""
        rng = random.Random(7)
        for _ in range(100):
            delay = apply_jitter(10.0, 0.25, rng)
            assert 7.5 <= delay <= 12.5

    def test_jitter_is_reproducible_with_seed(self):
        first = [apply_jitter(2.0, 0.5, random.Random(42)) for _ in range(3)]
        second = [apply_jitter(2.0, 0.5, random.Random(42)) for _ in range(3)]
        assert first == second

    def test_jitter_varies(self):
        rng = random.Random(1)
        delays = {apply_jitter(1.0, 0.5, rng) for _ in range(20)}
        assert len(delays) > 1
