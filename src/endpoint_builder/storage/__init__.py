"""
Persistent key/value storage used by credential-refreshing auth strategies.
"""
from .base import PersistStorage, create_default_storage
from .file import FileStoragePersist
from .memory import MemoryStoragePersist
from .redis import RedisStoragePersist

__all__ = [
    "PersistStorage",
    "create_default_storage",
    "MemoryStoragePersist",
    "FileStoragePersist",
    "RedisStoragePersist",
]
