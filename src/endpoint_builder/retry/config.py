"""
Backoff math shared by the retry strategies
"""
import random
import time
from email.utils import parsedate_to_datetime
from typing import Iterable, Optional

# Default status codes that should trigger a retry
DEFAULT_RETRY_STATUS_CODES = (429, 500, 502, 503, 504)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_SECONDS = 0.3
DEFAULT_MAX_DELAY_SECONDS = 10.0


def calculate_exponential_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """
    Exponential window for a 1-based attempt number.

    delay = min(base * 2^(attempt - 1), max_delay)
    """
    exponent = max(0, attempt - 1)
    try:
        delay = base_delay * (2 ** exponent)
    except OverflowError:
        return max_delay
    return min(delay, max_delay)


def apply_half_jitter(delay: float, rng: Optional[random.Random] = None) -> float:
    """
    Half jitter: sample uniformly from [delay / 2, delay].

    Keeps a guaranteed minimum wait while still spreading clients apart.
    """
    sample = rng.random() if rng is not None else random.random()
    return delay / 2 + sample * (delay / 2)


def calculate_linear_delay(attempt: int, base_delay: float, increment: float, max_delay: Optional[float] = None) -> float:
    """Linear delay for a 1-based attempt: base + (attempt - 1) * increment."""
    delay = base_delay + max(0, attempt - 1) * increment
    return min(delay, max_delay) if max_delay is not None else delay


def is_retryable_status(status: int, status_codes: Iterable[int]) -> bool:
    """Check if an HTTP status code should trigger a retry."""
    return status in set(status_codes)


def is_server_or_rate_limit_status(status: int) -> bool:
    """5xx and 429."""
    return status >= 500 or status == 429


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """
    Parse Retry-After header value.

    The Retry-After header can contain either:
    - A number of seconds to wait
    - An HTTP-date indicating when to retry

    Args:
        value: Retry-After header value

    Returns:
        Wait time in seconds, or None if the value is unusable
        (unparseable, or a date that is already in the past)
    """
    if not value:
        return None
    value = value.strip()

    # Try parsing as seconds
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        return max(0.0, seconds)

    # Try parsing as HTTP-date
    try:
        dt = parsedate_to_datetime(value)
    except (ValueError, TypeError, IndexError):
        return None
    if dt is None:
        return None
    delay = dt.timestamp() - time.time()
    return delay if delay > 0 else None
