"""
Key/value storage backends for usage counter state.

The counters only need three asynchronous operations on string values:
``get``, ``set`` and ``remove``. Backends raise on I/O failure; the
caller decides whether to fail open or closed.

Backends:
- MemoryStore: in-process dict (tests, short-lived sessions)
- JsonFileStore: all keys in one JSON document on disk
"""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional


class KeyValueStore(ABC):
    """Abstract persistent key/value store."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value or None."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        pass


class MemoryStore(KeyValueStore):
    """Dictionary-backed store."""

    def __init__(self, initial: Dict[str, str] | None = None):
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """Store every key in a single JSON file.

    The file is re-read on each access so several processes (the CLI run
    twice in a row, for instance) see each other's writes. File I/O runs
    in a worker thread to keep the event loop responsive.

    Every key shares the one document, so all reads and read-modify-write
    updates go through a single lock per store instance.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        tmp.replace(self.path)

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
        return data.get(key)

    async def set(self, key: str, value: str) -> None:
        def update():
            data = self._read()
            data[key] = value
            self._write(data)
        async with self._lock:
            await asyncio.to_thread(update)

    async def remove(self, key: str) -> None:
        def update():
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)
        async with self._lock:
            await asyncio.to_thread(update)

    def clear(self) -> None:
        """Delete the backing file."""
        if self.path.exists():
            self.path.unlink()
