"""Storage backend implementations for storefront-sync."""

from .base import BaseStorageBackend
from .memory import MemoryStorage
from .redis import AsyncRedisStorage

__all__ = [
    "AsyncRedisStorage",
    "BaseStorageBackend",
    "MemoryStorage",
]
