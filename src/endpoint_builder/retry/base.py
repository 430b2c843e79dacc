"""
Retry strategy interface.
"""
from abc import ABC, abstractmethod
from typing import Awaitable, Union

from ..types import RetryContext


class RetryStrategy(ABC):
    """
    Decides whether a failed attempt is retried and how long to wait.

    Both methods may return a plain value or an awaitable. ``ctx.attempt``
    is 1-based: it is the number of the attempt that just failed.
    """

    @abstractmethod
    def should_retry(self, ctx: RetryContext) -> Union[bool, Awaitable[bool]]:
        """Return True to schedule another attempt."""
        ...

    @abstractmethod
    def next_delay(self, ctx: RetryContext) -> Union[float, Awaitable[float]]:
        """Seconds to wait before the next attempt."""
        ...
