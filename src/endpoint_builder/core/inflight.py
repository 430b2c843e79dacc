"""
In-flight request registry used for deduplication.

Concurrent identical requests share one task: the first caller registers
it, later callers get the same object back until it settles.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger("endpoint_builder.inflight")


class InFlightRegistry:
    """Fingerprint -> running task. One registry per client."""

    def __init__(self) -> None:
        self._tasks: Dict[str, "asyncio.Future[Any]"] = {}

    def get(self, key: str) -> Optional["asyncio.Future[Any]"]:
        task = self._tasks.get(key)
        if task is not None and task.done():
            # settled but its done-callback has not run yet
            return None
        return task

    def register(self, key: str, task: "asyncio.Future[Any]") -> None:
        """Track ``task`` under ``key`` until it settles, whatever the outcome."""
        self._tasks[key] = task

        def _remove(done: "asyncio.Future[Any]") -> None:
            if self._tasks.get(key) is done:
                del self._tasks[key]
                logger.debug(f"InFlightRegistry: released key={key[:12]}")

        task.add_done_callback(_remove)

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def size(self) -> int:
        return len(self._tasks)

    def clear(self) -> None:
        """Forget every entry; running tasks keep running."""
        self._tasks.clear()
