"""
Storage interface for endpoint_builder.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional


class PersistStorage(ABC):
    """Async key/value store.

    ``get`` must never raise on unreadable data: a value that cannot be
    deserialized is reported as missing.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Get a value by key, or None."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete a key. Missing keys are ignored."""
        pass


def create_default_storage() -> PersistStorage:
    """Storage used when a client is created without one."""
    from .memory import MemoryStoragePersist

    return MemoryStoragePersist()
