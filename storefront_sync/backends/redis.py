from logging import getLogger
from typing import TYPE_CHECKING
from typing import Any
from typing import Optional

from storefront_sync.exceptions import CacheError

from .base import BaseStorageBackend

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = getLogger(__name__)

# Number of keys fetched per SCAN round trip
SCAN_BATCH_SIZE = 500


class AsyncRedisStorage(BaseStorageBackend):
    """Durable storage backend on top of ``redis.asyncio``.

    Every key is stored under ``key_prefix`` so several applications (or
    several cache instances) can share one Redis database without their
    ``clear()`` calls touching each other.
    """

    client: "Redis"

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 6379,
        password: Optional[str] = None,
        db: int = 0,
        key_prefix: str = "storefront_sync:",
        socket_timeout: float = 1.0,
        socket_connect_timeout: float = 1.0,
        **kwargs: Any,
    ) -> None:
        """Initialize the Redis storage backend.

        Args:
            host: Redis server host
            port: Redis server port
            password: Optional password for the server
            db: Database index
            key_prefix: Namespace prepended to every stored key
            socket_timeout: Timeout for socket operations in seconds
            socket_connect_timeout: Timeout for establishing a connection
            **kwargs: Extra arguments forwarded to ``redis.asyncio.Redis``

        Raises:
            CacheError: If the redis package is not installed
        """
        try:
            from redis import asyncio as aioredis
        except ImportError as e:
            msg = "redis[hiredis] is not installed. Please install it with `pip install 'storefront-sync[redis]'`"
            raise CacheError(msg) from e

        self.client = aioredis.Redis(
            host=host,
            port=port,
            password=password,
            db=db,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_connect_timeout,
            decode_responses=True,
            **kwargs,
        )
        self.key_prefix = key_prefix

    def _make_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def _strip_key(self, key: str) -> str:
        return key[len(self.key_prefix) :]

    async def get(self, key: str) -> Optional[str]:
        value = await self.client.get(self._make_key(key))
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str) -> None:
        await self.client.set(self._make_key(key), value)

    async def delete(self, key: str) -> None:
        await self.client.delete(self._make_key(key))

    async def keys(self, prefix: str = "") -> list[str]:
        pattern = f"{self._escape(self._make_key(prefix))}*"
        return [
            self._strip_key(k.decode("utf-8") if isinstance(k, bytes) else k)
            async for k in self.client.scan_iter(match=pattern, count=SCAN_BATCH_SIZE)
        ]

    async def clear(self) -> None:
        keys = [self._make_key(k) for k in await self.keys()]
        if keys:
            await self.client.delete(*keys)
        logger.info("Cleared %d keys under prefix <%s>", len(keys), self.key_prefix)

    async def close(self) -> None:
        await self.client.aclose()

    @staticmethod
    def _escape(pattern: str) -> str:
        """Escape glob metacharacters so prefixes match literally in SCAN."""
        for char in ("\\", "*", "?", "[", "]"):
            pattern = pattern.replace(char, f"\\{char}")
        return pattern
