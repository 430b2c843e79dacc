"""
In-memory storage implementation.
"""
import json
import logging
from typing import Any, Dict, Optional

from .base import PersistStorage

logger = logging.getLogger("endpoint_builder.storage.memory")


class MemoryStoragePersist(PersistStorage):
    """
    Volatile storage backed by a dict.

    Values are kept JSON-encoded so callers always get a fresh copy and
    behave the same as with the persistent backends.
    """

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.debug(f"MemoryStoragePersist.get: unreadable value for key={key!r}")
            return None

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def size(self) -> int:
        return len(self._data)

    def clear(self) -> None:
        self._data.clear()
