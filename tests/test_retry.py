"""
Tests for retry strategies and backoff math.
"""
import random
from email.utils import format_datetime
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from endpoint_builder import (
    CustomRetryStrategy,
    ExponentialRetryStrategy,
    FixedDelayRetryStrategy,
    JitteredExponentialBackoffRetryStrategy,
    LinearBackoffRetryStrategy,
    NoRetryStrategy,
    RequestConfig,
    RetryContext,
)
from endpoint_builder.retry import (
    apply_half_jitter,
    calculate_exponential_delay,
    calculate_linear_delay,
    parse_retry_after,
)

CONFIG = RequestConfig(url="https://api.example.com/x")


def ctx(attempt: int, status=None, headers=None) -> RetryContext:
    response = httpx.Response(status, headers=headers) if status is not None else None
    return RetryContext(attempt=attempt, config=CONFIG, response=response)


class TestBackoffMath:
    """Tests for the delay helpers."""

    def test_exponential_doubles(self):
        assert [calculate_exponential_delay(n, 0.5, 100) for n in (1, 2, 3, 4)] == [0.5, 1.0, 2.0, 4.0]

    def test_exponential_is_capped(self):
        assert calculate_exponential_delay(20, 1.0, 10.0) == 10.0

    def test_exponential_huge_attempt(self):
        """Should not overflow for absurd attempt numbers."""
        assert calculate_exponential_delay(5000, 1.0, 10.0) == 10.0

    def test_half_jitter_bounds(self):
        rng = random.Random(7)
        for _ in range(100):
            value = apply_half_jitter(4.0, rng)
            assert 2.0 <= value <= 4.0

    def test_linear(self):
        assert calculate_linear_delay(3, 1.0, 0.5) == 2.0
        assert calculate_linear_delay(10, 1.0, 1.0, max_delay=3.0) == 3.0


class TestParseRetryAfter:
    """Tests for parse_retry_after."""

    def test_seconds(self):
        assert parse_retry_after("3") == 3.0

    def test_negative_seconds_clamp_to_zero(self):
        assert parse_retry_after("-5") == 0.0

    def test_http_date_in_future(self):
        when = datetime.now(timezone.utc) + timedelta(seconds=30)
        delay = parse_retry_after(format_datetime(when, usegmt=True))
        assert 25 <= delay <= 31

    def test_http_date_in_past(self):
        """Should ignore dates already in the past."""
        when = datetime.now(timezone.utc) - timedelta(minutes=5)
        assert parse_retry_after(format_datetime(when, usegmt=True)) is None

    @pytest.mark.parametrize("value", [None, "", "soon"])
    def test_unusable(self, value):
        assert parse_retry_after(value) is None


class TestJitteredExponentialBackoff:
    """Tests for JitteredExponentialBackoffRetryStrategy."""

    def test_retries_network_errors_5xx_and_429(self):
        strategy = JitteredExponentialBackoffRetryStrategy(max_attempts=3)
        assert strategy.should_retry(ctx(1))
        assert strategy.should_retry(ctx(1, 500))
        assert strategy.should_retry(ctx(1, 503))
        assert strategy.should_retry(ctx(1, 429))

    def test_does_not_retry_client_errors(self):
        strategy = JitteredExponentialBackoffRetryStrategy(max_attempts=3)
        assert not strategy.should_retry(ctx(1, 400))
        assert not strategy.should_retry(ctx(1, 404))

    def test_stops_at_max_attempts(self):
        """Should refuse once attempt reaches max_attempts."""
        strategy = JitteredExponentialBackoffRetryStrategy(max_attempts=3)
        assert strategy.should_retry(ctx(2, 500))
        assert not strategy.should_retry(ctx(3, 500))

    def test_seeded_delays_stay_in_window(self):
        """Should sample each delay from [exp/2, exp] with a seeded RNG."""
        strategy = JitteredExponentialBackoffRetryStrategy(
            max_attempts=10, base_delay_seconds=0.1, max_delay_seconds=1.0, rng=random.Random(42)
        )
        for attempt in range(1, 9):
            exp = min(0.1 * 2 ** (attempt - 1), 1.0)
            delay = strategy.next_delay(ctx(attempt, 500))
            assert exp / 2 <= delay <= exp

    def test_windows_grow_monotonically_until_cap(self):
        """Should never shrink the window and never exceed max_delay."""
        strategy = JitteredExponentialBackoffRetryStrategy(
            max_attempts=10, base_delay_seconds=0.1, max_delay_seconds=1.0, rng=random.Random(1)
        )
        lower_bounds = []
        for attempt in range(1, 9):
            delay = strategy.next_delay(ctx(attempt, 500))
            assert delay <= 1.0
            lower_bounds.append(min(0.1 * 2 ** (attempt - 1), 1.0) / 2)
        assert lower_bounds == sorted(lower_bounds)

    def test_same_seed_same_delays(self):
        def delays(seed):
            strategy = JitteredExponentialBackoffRetryStrategy(rng=random.Random(seed))
            return [strategy.next_delay(ctx(n, 500)) for n in (1, 2, 3)]

        assert delays(3) == delays(3)

    def test_rejects_invalid_max_attempts(self):
        with pytest.raises(ValueError):
            JitteredExponentialBackoffRetryStrategy(max_attempts=0)


class TestExponentialRetryStrategy:
    """Tests for the Retry-After aware default strategy."""

    def test_defaults(self):
        strategy = ExponentialRetryStrategy()
        assert strategy.max_attempts == 3
        assert strategy.base_delay_seconds == 0.3
        assert strategy.max_delay_seconds == 10.0
        assert strategy.retry_status_codes == frozenset({429, 500, 502, 503, 504})

    def test_only_listed_statuses(self):
        strategy = ExponentialRetryStrategy()
        assert strategy.should_retry(ctx(1, 502))
        assert not strategy.should_retry(ctx(1, 501))

    def test_network_errors_can_be_excluded(self):
        assert not ExponentialRetryStrategy(retry_on_network_error=False).should_retry(ctx(1))

    def test_honours_retry_after_seconds(self):
        strategy = ExponentialRetryStrategy(rng=random.Random(0))
        assert strategy.next_delay(ctx(1, 429, {"Retry-After": "2"})) == 2.0

    def test_retry_after_is_clamped(self):
        """Should cap Retry-After at max_delay."""
        strategy = ExponentialRetryStrategy(max_delay_seconds=5.0)
        assert strategy.next_delay(ctx(1, 503, {"Retry-After": "120"})) == 5.0

    def test_ignores_retry_after_when_disabled(self):
        strategy = ExponentialRetryStrategy(
            base_delay_seconds=0.1, respect_retry_after=False, rng=random.Random(0)
        )
        assert strategy.next_delay(ctx(1, 429, {"Retry-After": "2"})) <= 0.1


class TestSimpleStrategies:
    """Tests for the remaining reference strategies."""

    def test_no_retry(self):
        strategy = NoRetryStrategy()
        assert not strategy.should_retry(ctx(1))
        assert strategy.next_delay(ctx(1)) == 0.0

    def test_fixed_delay(self):
        strategy = FixedDelayRetryStrategy(max_attempts=2, delay_seconds=0.25)
        assert strategy.should_retry(ctx(1, 500))
        assert not strategy.should_retry(ctx(2, 500))
        assert strategy.next_delay(ctx(1, 500)) == 0.25

    def test_linear(self):
        strategy = LinearBackoffRetryStrategy(max_attempts=5, base_delay_seconds=1.0, increment_seconds=0.5)
        assert [strategy.next_delay(ctx(n, 500)) for n in (1, 2, 3)] == [1.0, 1.5, 2.0]

    def test_custom(self):
        strategy = CustomRetryStrategy(
            should_retry=lambda c: c.response is not None and c.response.status_code == 409,
            delay=lambda c: 0.5 * c.attempt,
            max_attempts=3,
        )
        assert strategy.should_retry(ctx(1, 409))
        assert not strategy.should_retry(ctx(1, 500))
        assert not strategy.should_retry(ctx(3, 409))
        assert strategy.next_delay(ctx(2, 409)) == 1.0
