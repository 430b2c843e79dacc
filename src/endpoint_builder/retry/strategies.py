"""
Reference retry strategies.
"""
import logging
import random
from typing import Awaitable, Callable, Iterable, Optional, Union

from ..types import RetryContext
from .base import RetryStrategy
from .config import (
    DEFAULT_BASE_DELAY_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_DELAY_SECONDS,
    DEFAULT_RETRY_STATUS_CODES,
    apply_half_jitter,
    calculate_exponential_delay,
    calculate_linear_delay,
    is_server_or_rate_limit_status,
    parse_retry_after,
)

logger = logging.getLogger("endpoint_builder.retry")


def _default_should_retry(ctx: RetryContext, max_attempts: int) -> bool:
    if ctx.attempt >= max_attempts:
        return False
    # network failure => no response
    if ctx.response is None:
        return True
    return is_server_or_rate_limit_status(ctx.response.status_code)


class NoRetryStrategy(RetryStrategy):
    """Never retries."""

    max_attempts = 1

    def should_retry(self, ctx: RetryContext) -> bool:
        return False

    def next_delay(self, ctx: RetryContext) -> float:
        return 0.0


class FixedDelayRetryStrategy(RetryStrategy):
    """Retry network failures, 5xx and 429 after a constant delay."""

    def __init__(self, max_attempts: int = DEFAULT_MAX_ATTEMPTS, delay_seconds: float = 1.0) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        self.max_attempts = max_attempts
        self.delay_seconds = delay_seconds

    def should_retry(self, ctx: RetryContext) -> bool:
        return _default_should_retry(ctx, self.max_attempts)

    def next_delay(self, ctx: RetryContext) -> float:
        return self.delay_seconds


class LinearBackoffRetryStrategy(RetryStrategy):
    """Delay grows by a fixed increment per attempt."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay_seconds: float = 1.0,
        increment_seconds: float = 1.0,
        max_delay_seconds: Optional[float] = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.base_delay_seconds = base_delay_seconds
        self.increment_seconds = increment_seconds
        self.max_delay_seconds = max_delay_seconds

    def should_retry(self, ctx: RetryContext) -> bool:
        return _default_should_retry(ctx, self.max_attempts)

    def next_delay(self, ctx: RetryContext) -> float:
        return calculate_linear_delay(
            ctx.attempt, self.base_delay_seconds, self.increment_seconds, self.max_delay_seconds
        )


class JitteredExponentialBackoffRetryStrategy(RetryStrategy):
    """
    Exponential backoff with half jitter.

    Retries while ``attempt < max_attempts`` and the attempt failed without
    a response, with a 5xx status, or with 429. The delay for attempt n is
    sampled uniformly from [exp / 2, exp] where
    exp = min(base * 2^(n-1), max_delay).

    Args:
        max_attempts: Total attempts including the first one. Default: 3
        base_delay_seconds: Base delay. Default: 0.3
        max_delay_seconds: Cap for the exponential window. Default: 10.0
        rng: Random source, pass ``random.Random(seed)`` for reproducible delays
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay_seconds: float = DEFAULT_BASE_DELAY_SECONDS,
        max_delay_seconds: float = DEFAULT_MAX_DELAY_SECONDS,
        rng: Optional[random.Random] = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if base_delay_seconds < 0 or max_delay_seconds < 0:
            raise ValueError("delays must be >= 0")
        self.max_attempts = max_attempts
        self.base_delay_seconds = base_delay_seconds
        self.max_delay_seconds = max_delay_seconds
        self._rng = rng

    def should_retry(self, ctx: RetryContext) -> bool:
        return _default_should_retry(ctx, self.max_attempts)

    def next_delay(self, ctx: RetryContext) -> float:
        exp = calculate_exponential_delay(ctx.attempt, self.base_delay_seconds, self.max_delay_seconds)
        return apply_half_jitter(exp, self._rng)


class ExponentialRetryStrategy(JitteredExponentialBackoffRetryStrategy):
    """
    Jittered exponential backoff that honours Retry-After.

    This is the client default. A ``Retry-After`` header (seconds or
    HTTP-date) replaces the computed delay, clamped to ``max_delay_seconds``.
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay_seconds: float = DEFAULT_BASE_DELAY_SECONDS,
        max_delay_seconds: float = DEFAULT_MAX_DELAY_SECONDS,
        retry_status_codes: Iterable[int] = DEFAULT_RETRY_STATUS_CODES,
        respect_retry_after: bool = True,
        retry_on_network_error: bool = True,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__(max_attempts, base_delay_seconds, max_delay_seconds, rng)
        self.retry_status_codes = frozenset(retry_status_codes)
        self.respect_retry_after = respect_retry_after
        self.retry_on_network_error = retry_on_network_error

    def should_retry(self, ctx: RetryContext) -> bool:
        if ctx.attempt >= self.max_attempts:
            return False
        if ctx.response is None:
            return self.retry_on_network_error
        return ctx.response.status_code in self.retry_status_codes

    def next_delay(self, ctx: RetryContext) -> float:
        if self.respect_retry_after and ctx.response is not None:
            retry_after = parse_retry_after(ctx.response.headers.get("retry-after"))
            if retry_after is not None:
                delay = min(retry_after, self.max_delay_seconds)
                logger.debug(f"ExponentialRetryStrategy: honouring Retry-After, delay={delay:.3f}s")
                return delay
        return super().next_delay(ctx)


ShouldRetryFn = Callable[[RetryContext], Union[bool, Awaitable[bool]]]
DelayFn = Callable[[RetryContext], Union[float, Awaitable[float]]]


class CustomRetryStrategy(RetryStrategy):
    """
    Retry strategy built from callables.

    Example:
        CustomRetryStrategy(
            should_retry=lambda ctx: ctx.response is not None and ctx.response.status_code == 409,
            delay=lambda ctx: 0.5 * ctx.attempt,
            max_attempts=4,
        )
    """

    def __init__(
        self,
        should_retry: ShouldRetryFn,
        delay: DelayFn,
        max_attempts: Optional[int] = None,
    ) -> None:
        self._should_retry = should_retry
        self._delay = delay
        self.max_attempts = max_attempts

    def should_retry(self, ctx: RetryContext) -> Union[bool, Awaitable[bool]]:
        if self.max_attempts is not None and ctx.attempt >= self.max_attempts:
            return False
        return self._should_retry(ctx)

    def next_delay(self, ctx: RetryContext) -> Union[float, Awaitable[float]]:
        return self._delay(ctx)


def create_default_retry_strategy() -> RetryStrategy:
    """Retry strategy used when a client is created without one."""
    return ExponentialRetryStrategy()
