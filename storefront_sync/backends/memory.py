import asyncio
from typing import Optional

from .base import BaseStorageBackend


class MemoryStorage(BaseStorageBackend):
    """In-memory storage backend implementation.

    Values live as long as the process does, so this backend is meant for
    tests and as the fallback default when nothing durable is configured.
    """

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[str]:
        async with self.lock:
            return self.store.get(key)

    async def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            msg = f"MemoryStorage only stores strings, got {type(value).__name__}"
            raise TypeError(msg)
        async with self.lock:
            self.store[key] = value

    async def delete(self, key: str) -> None:
        async with self.lock:
            self.store.pop(key, None)

    async def keys(self, prefix: str = "") -> list[str]:
        async with self.lock:
            return [k for k in self.store if k.startswith(prefix)]

    async def clear(self) -> None:
        async with self.lock:
            self.store.clear()
