from abc import ABC
from abc import abstractmethod
from typing import Optional


class BaseStorageBackend(ABC):
    """Base class for all durable key-value storage backends.

    Keys and values are plain strings. Writes may raise (quota, connection
    loss); callers decide whether that is fatal.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Retrieve a stored value."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a value. Removing an absent key is a no-op."""

    @abstractmethod
    async def keys(self, prefix: str = "") -> list[str]:
        """Return every stored key starting with ``prefix``."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every value owned by this backend."""
