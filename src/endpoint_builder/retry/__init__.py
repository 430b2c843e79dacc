"""
Retry strategies with exponential backoff and jitter support.
"""
from .base import RetryStrategy
from .config import (
    DEFAULT_RETRY_STATUS_CODES,
    apply_half_jitter,
    calculate_exponential_delay,
    calculate_linear_delay,
    is_retryable_status,
    parse_retry_after,
)
from .strategies import (
    CustomRetryStrategy,
    ExponentialRetryStrategy,
    FixedDelayRetryStrategy,
    JitteredExponentialBackoffRetryStrategy,
    LinearBackoffRetryStrategy,
    NoRetryStrategy,
    create_default_retry_strategy,
)

__all__ = [
    # Interface
    "RetryStrategy",
    # Strategies
    "NoRetryStrategy",
    "FixedDelayRetryStrategy",
    "LinearBackoffRetryStrategy",
    "JitteredExponentialBackoffRetryStrategy",
    "ExponentialRetryStrategy",
    "CustomRetryStrategy",
    "create_default_retry_strategy",
    # Backoff math
    "DEFAULT_RETRY_STATUS_CODES",
    "apply_half_jitter",
    "calculate_exponential_delay",
    "calculate_linear_delay",
    "is_retryable_status",
    "parse_retry_after",
]
