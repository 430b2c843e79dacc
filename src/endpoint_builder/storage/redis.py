"""
Redis storage implementation
Suitable for sharing tokens across processes/servers
"""
import json
import logging
from typing import Any, Optional, Protocol

from .base import PersistStorage

logger = logging.getLogger("endpoint_builder.storage.redis")


class RedisClientProtocol(Protocol):
    """Protocol for Redis client (compatible with redis-py async)"""

    async def get(self, name: str) -> Any:
        ...

    async def set(self, name: str, value: Any) -> Any:
        ...

    async def delete(self, *names: str) -> int:
        ...


class RedisStoragePersist(PersistStorage):
    """
    Redis implementation of PersistStorage.
    """

    def __init__(self, client: RedisClientProtocol, key_prefix: str = "endpoint_builder:") -> None:
        """
        Create a new RedisStoragePersist.

        Args:
            client: Redis client (async redis-py instance)
            key_prefix: Prefix for all keys. Default: 'endpoint_builder:'
        """
        self._client = client
        self._key_prefix = key_prefix

    def _get_key(self, key: str) -> str:
        """Get the full key with prefix"""
        return f"{self._key_prefix}{key}"

    async def get(self, key: str) -> Optional[Any]:
        raw = await self._client.get(self._get_key(key))
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        try:
            return json.loads(raw)
        except ValueError:
            logger.debug(f"RedisStoragePersist.get: unreadable value for key={key!r}")
            return None

    async def set(self, key: str, value: Any) -> None:
        await self._client.set(self._get_key(key), json.dumps(value))

    async def delete(self, key: str) -> None:
        await self._client.delete(self._get_key(key))
