"""Process-wide default storage for caches created without a backend."""

from logging import getLogger
from typing import Optional

from .backends import BaseStorageBackend
from .backends import MemoryStorage
from .exceptions import BackendNotFoundError

logger = getLogger(__name__)


class StorageProxy:
    """Holder for the storage shared by every default-constructed cache.

    Applications install a durable backend at startup with
    :meth:`set_backend`. Until they do, :meth:`ensure_backend` lazily installs
    an in-memory store so caching still works within the process.
    """

    _backend: Optional[BaseStorageBackend] = None

    @classmethod
    def current(cls) -> Optional[BaseStorageBackend]:
        """Return the installed backend, or None when nothing is installed."""
        return cls._backend

    @classmethod
    def get_backend(cls) -> BaseStorageBackend:
        """Return the installed backend.

        Raises:
            BackendNotFoundError: If no backend has been installed
        """
        if cls._backend is None:
            msg = "No storage backend installed. Call StorageProxy.set_backend() first."
            raise BackendNotFoundError(msg)
        return cls._backend

    @classmethod
    def ensure_backend(cls) -> BaseStorageBackend:
        """Return the installed backend, installing in-memory storage if there is none."""
        if cls._backend is None:
            logger.info("No storage backend installed, falling back to in-memory storage")
            cls._backend = MemoryStorage()
        return cls._backend

    @classmethod
    def set_backend(
        cls, backend: Optional[BaseStorageBackend]
    ) -> Optional[BaseStorageBackend]:
        """Install ``backend`` (or None to uninstall) and return the one it replaces."""
        previous, cls._backend = cls._backend, backend
        if backend is not previous:
            logger.info(
                "Storage backend swapped: <%s> -> <%s>",
                type(previous).__name__ if previous is not None else "None",
                type(backend).__name__ if backend is not None else "None",
            )
        return previous
