"""
File-backed storage implementation.

Survives process restarts. All keys live in one JSON document that is
rewritten atomically (temp file + replace) on every change. File I/O runs in
a worker thread; writes from one instance are serialized by a lock.
"""
import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .base import PersistStorage

logger = logging.getLogger("endpoint_builder.storage.file")


class FileStoragePersist(PersistStorage):
    """Persistent storage in a single JSON file."""

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> Dict[str, Any]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(text)
        except ValueError:
            logger.warning(f"FileStoragePersist: {self._path} is not valid JSON, ignoring contents")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle)
            os.replace(tmp_name, self._path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    async def get(self, key: str) -> Optional[Any]:
        raw = (await asyncio.to_thread(self._read)).get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            return None

    async def set(self, key: str, value: Any) -> None:
        encoded = json.dumps(value)
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            data[key] = encoded
            await asyncio.to_thread(self._write, data)

    async def delete(self, key: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            if key in data:
                del data[key]
                await asyncio.to_thread(self._write, data)
