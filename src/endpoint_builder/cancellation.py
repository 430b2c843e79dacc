"""
Cancellation tokens for endpoint_builder.

A token is cancelled once, either explicitly or by a scheduled timeout.
Everything that suspends inside the engine (network call, retry delay)
races against the token.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from .errors import RequestCancelledError, RequestTimeoutError
from .types import RequestConfig

logger = logging.getLogger("endpoint_builder.cancellation")

T = TypeVar("T")

TIMEOUT_REASON = "timeout"


class CancellationToken:
    """Cooperative cancellation signal.

    Example:
        token = CancellationToken()
        task = asyncio.create_task(client.get("/slow").signal(token).send())
        token.cancel("user navigated away")
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Any = None
        self._callbacks: List[Callable[[Any], None]] = []
        self._timer: Optional[asyncio.TimerHandle] = None

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancellationToken":
        """Create a token that cancels itself after ``seconds``.

        Must be called from a running event loop. Call ``dispose()`` once
        the guarded work settles to clear the schedule.
        """
        token = cls()
        loop = asyncio.get_running_loop()
        token._timer = loop.call_later(seconds, token.cancel, TIMEOUT_REASON)
        return token

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Any:
        return self._reason

    @property
    def timed_out(self) -> bool:
        return self.cancelled and self._reason == TIMEOUT_REASON

    def cancel(self, reason: Any = None) -> None:
        """Cancel the token. Later calls are ignored."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        self.dispose()
        for callback in list(self._callbacks):
            try:
                callback(reason)
            except Exception:
                logger.exception("CancellationToken: callback failed")

    def add_callback(self, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Register a callback fired on cancel; returns a remover."""
        self._callbacks.append(callback)

        def remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove

    def dispose(self) -> None:
        """Clear a pending timeout schedule."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def wait(self) -> Any:
        await self._event.wait()
        return self._reason

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled}, reason={self._reason!r})"


def cancelled_error(
    token: CancellationToken, config: Optional[RequestConfig] = None
) -> RequestCancelledError:
    """Build the error matching how ``token`` was cancelled."""
    if token.timed_out:
        timeout = config.timeout if config is not None else None
        message = f"Request timed out after {timeout}s" if timeout else "Request timed out"
        return RequestTimeoutError(message, config=config, reason=token.reason)
    return RequestCancelledError(
        f"Request was cancelled: {token.reason}" if token.reason is not None else "Request was cancelled",
        config=config,
        reason=token.reason,
    )


async def run_cancellable(
    awaitable: Awaitable[T],
    token: Optional[CancellationToken],
    config: Optional[RequestConfig] = None,
) -> T:
    """Await ``awaitable`` unless ``token`` is cancelled first.

    On cancellation the pending work is cancelled and a
    RequestCancelledError is raised. Cancellation wins ties.
    """
    if token is None:
        return await awaitable
    if token.cancelled:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise cancelled_error(token, config)

    work = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        raise
    finally:
        waiter.cancel()

    if token.cancelled:
        if not work.done():
            work.cancel()
        elif not work.cancelled():
            # mark the outcome retrieved
            work.exception()
        raise cancelled_error(token, config)
    return work.result()


async def sleep(seconds: float, token: Optional[CancellationToken] = None) -> None:
    """Sleep for ``seconds``, returning early if ``token`` is cancelled."""
    if seconds <= 0:
        return
    if token is None:
        await asyncio.sleep(seconds)
        return
    if token.cancelled:
        return
    try:
        await asyncio.wait_for(token.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        pass
