import inspect
import time
from collections.abc import Awaitable
from collections.abc import Callable
from collections.abc import Iterable
from functools import partial
from functools import wraps
from logging import getLogger
from typing import Any
from typing import Optional
from typing import Union

from storefront_sync.backends import BaseStorageBackend
from storefront_sync.config import CacheConfig
from storefront_sync.exceptions import CacheSerializationError
from storefront_sync.proxy import StorageProxy
from storefront_sync.types import CacheEntry
from storefront_sync.types import CacheEntryInfo
from storefront_sync.types import dumps
from storefront_sync.types import loads

logger = getLogger(__name__)

Loader = Callable[[], Union[Any, Awaitable[Any]]]
KeySource = Union[str, Callable[..., str]]
TagSource = Union[Iterable[str], Callable[..., Iterable[str]], None]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


async def call_loader(func: Callable, *args: Any, **kwargs: Any) -> Any:
    """Call a sync or async function and return its result."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        return await result
    return result


class TaggedCache:
    """Key/value cache with per-entry TTL and invalidation by tag.

    Entries are written to the storage backend as JSON under
    ``{key_prefix}{key}``; each tag keeps an ordered list of the keys written
    with it under ``{tag_prefix}{tag}``. Expiry is lazy: an expired entry is
    only deleted when it is read.

    The cache is best-effort. Storage failures and corrupt data are logged
    and behave like a miss; the only error that reaches callers is
    ``CacheSerializationError`` for values that cannot be stored as JSON.

    Tag indices are not pruned when an entry expires on read, so an index may
    reference keys that no longer exist. Those references are dropped when the
    tag is invalidated, or swept from ``set`` once the index grows past
    ``CacheConfig.tag_index_sweep_threshold``.
    """

    def __init__(
        self,
        backend: Optional[BaseStorageBackend] = None,
        config: Optional[CacheConfig] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self.backend = backend if backend is not None else StorageProxy.ensure_backend()
        self.config = config or CacheConfig()
        self.clock = clock or now_ms

    def _entry_key(self, key: str) -> str:
        return f"{self.config.key_prefix}{key}"

    def _tag_key(self, tag: str) -> str:
        return f"{self.config.tag_prefix}{tag}"

    async def set(
        self,
        key: str,
        data: Any,
        *,
        ttl: Optional[int] = None,
        tags: Iterable[str] = (),
    ) -> None:
        """Store ``data`` under ``key``.

        Args:
            key: Caller-chosen cache key, e.g. ``"orders:c1"``
            data: JSON-serializable payload
            ttl: Lifetime in milliseconds, defaults to ``CacheConfig.default_ttl_ms``
            tags: Invalidation groups for the entry

        Raises:
            CacheSerializationError: If ``data`` cannot be serialized
        """
        entry = CacheEntry(
            data=data,
            timestamp=self.clock(),
            ttl=self.config.default_ttl_ms if ttl is None else ttl,
            tags=tuple(dict.fromkeys(tags)),
        )
        try:
            raw = entry.to_json()
        except TypeError as e:
            msg = f"Cannot cache value for key <{key}>: {e}"
            raise CacheSerializationError(msg) from e

        try:
            await self.backend.set(self._entry_key(key), raw)
            for tag in entry.tags:
                await self._register_tag(tag, key)
        except Exception:
            logger.warning("Failed to write cache entry <%s>", key, exc_info=True)

    async def get(self, key: str) -> Any:
        """Return the cached payload for ``key``, or None on a miss.

        Expired and unreadable entries are deleted as a side effect.
        """
        try:
            raw = await self.backend.get(self._entry_key(key))
        except Exception:
            logger.warning("Failed to read cache entry <%s>", key, exc_info=True)
            return None

        if raw is None:
            logger.debug("Cache miss <%s>", key)
            return None

        try:
            entry = CacheEntry.from_json(raw)
        except ValueError:
            logger.warning("Discarding corrupt cache entry <%s>", key)
            await self.remove(key)
            return None

        if not entry.is_live(self.clock()):
            logger.debug("Cache entry <%s> expired", key)
            await self.remove(key)
            return None

        logger.debug("Cache hit <%s>", key)
        return entry.data

    async def has(self, key: str) -> bool:
        return await self.get(key) is not None

    async def remove(self, key: str) -> None:
        """Delete the entry for ``key``. Tag indices are left untouched."""
        try:
            await self.backend.delete(self._entry_key(key))
        except Exception:
            logger.warning("Failed to remove cache entry <%s>", key, exc_info=True)

    async def invalidate_by_tag(self, tag: str) -> int:
        """Remove every entry written with ``tag`` and drop the tag index.

        Returns:
            The number of keys the index referenced
        """
        keys = await self._read_tag_keys(tag)
        for key in keys:
            await self.remove(key)

        try:
            await self.backend.delete(self._tag_key(tag))
        except Exception:
            logger.warning("Failed to remove tag index <%s>", tag, exc_info=True)

        logger.debug("Invalidated tag <%s> (%d keys)", tag, len(keys))
        return len(keys)

    async def invalidate_by_tags(self, tags: Iterable[str]) -> None:
        for tag in tags:
            try:
                await self.invalidate_by_tag(tag)
            except Exception:
                logger.warning("Failed to invalidate tag <%s>", tag, exc_info=True)

    async def clear(self) -> None:
        """Delete every entry and tag index of this cache.

        Keys outside ``key_prefix`` and ``tag_prefix`` are never touched.
        """
        try:
            keys = await self.backend.keys(self.config.key_prefix)
            keys += await self.backend.keys(self.config.tag_prefix)
            for storage_key in dict.fromkeys(keys):
                await self.backend.delete(storage_key)
        except Exception:
            logger.warning("Failed to clear cache", exc_info=True)

    async def get_or_set(
        self,
        key: str,
        loader: Loader,
        *,
        ttl: Optional[int] = None,
        tags: Iterable[str] = (),
    ) -> Any:
        """Read-through lookup: return the cached value or load and store it.

        ``loader`` may be sync or async. A ``None`` result is returned but
        not cached.
        """
        cached_value = await self.get(key)
        if cached_value is not None:
            return cached_value

        value = await call_loader(loader)
        if value is not None:
            await self.set(key, value, ttl=ttl, tags=tags)
        return value

    async def tag_keys(self, tag: str) -> list[str]:
        return await self._read_tag_keys(tag)

    async def prune_tag_index(self, tag: str) -> int:
        """Drop references to keys that no longer exist in storage.

        Returns:
            The number of references dropped
        """
        keys = await self._read_tag_keys(tag)
        if not keys:
            return 0

        try:
            existing = await self._existing_keys(keys)
            dropped = len(keys) - len(existing)
            if existing:
                if dropped:
                    await self.backend.set(self._tag_key(tag), dumps(existing))
            else:
                await self.backend.delete(self._tag_key(tag))
        except Exception:
            logger.warning("Failed to prune tag index <%s>", tag, exc_info=True)
            return 0
        return dropped

    async def entries(self) -> list[CacheEntryInfo]:
        """List stored entries without triggering lazy expiry.

        Corrupt or unreadable entries are skipped; an unreachable backend
        lists as empty.
        """
        now = self.clock()
        prefix = self.config.key_prefix
        try:
            storage_keys = sorted(await self.backend.keys(prefix))
        except Exception:
            logger.warning("Failed to list cache entries", exc_info=True)
            return []

        infos = []
        for storage_key in storage_keys:
            try:
                raw = await self.backend.get(storage_key)
            except Exception:
                logger.warning("Failed to read cache entry <%s>", storage_key, exc_info=True)
                continue
            if raw is None:
                continue
            try:
                entry = CacheEntry.from_json(raw)
            except ValueError:
                continue
            infos.append(
                CacheEntryInfo(
                    key=storage_key[len(prefix) :],
                    timestamp=entry.timestamp,
                    ttl=entry.ttl,
                    tags=list(entry.tags),
                    is_expired=not entry.is_live(now),
                    ttl_remaining_ms=max(0, entry.expires_at() - now),
                )
            )
        return infos

    async def _read_tag_keys(self, tag: str) -> list[str]:
        try:
            raw = await self.backend.get(self._tag_key(tag))
        except Exception:
            logger.warning("Failed to read tag index <%s>", tag, exc_info=True)
            return []

        if raw is None:
            return []

        try:
            keys = loads(raw)
        except ValueError:
            logger.warning("Discarding corrupt tag index <%s>", tag)
            return []

        if not isinstance(keys, list) or not all(isinstance(k, str) for k in keys):
            logger.warning("Discarding malformed tag index <%s>", tag)
            return []
        return keys

    async def _register_tag(self, tag: str, key: str) -> None:
        keys = await self._read_tag_keys(tag)
        if key in keys:
            return

        keys.append(key)
        threshold = self.config.tag_index_sweep_threshold
        if threshold is not None and len(keys) > threshold:
            keys = await self._existing_keys(keys)
            logger.debug("Swept tag index <%s> down to %d keys", tag, len(keys))

        await self.backend.set(self._tag_key(tag), dumps(keys))

    async def _existing_keys(self, keys: list[str]) -> list[str]:
        prefix = self.config.key_prefix
        stored = {k[len(prefix) :] for k in await self.backend.keys(prefix)}
        return [k for k in keys if k in stored]


def cached(
    key: KeySource,
    *,
    ttl: Optional[int] = None,
    tags: TagSource = None,
    cache: Optional[TaggedCache] = None,
) -> Callable:
    """Memoize a fetch function through a :class:`TaggedCache`.

    Args:
        key: Cache key, or a callable building it from the call arguments
        ttl: Lifetime in milliseconds for stored results
        tags: Tags for stored results, or a callable building them from the call arguments
        cache: Cache to use; defaults to one on the process-wide storage backend

    Example:
        @cached(lambda store_id: f"products:{store_id}", tags=lambda store_id: [CacheTags.products(store_id)])
        async def fetch_products(store_id: str) -> list[dict]:
            ...
    """

    def decorator(func: Callable) -> Callable:
        target = cache if cache is not None else TaggedCache()

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            cache_key = key(*args, **kwargs) if callable(key) else key
            entry_tags = tags(*args, **kwargs) if callable(tags) else (tags or ())
            return await target.get_or_set(
                cache_key,
                partial(func, *args, **kwargs),
                ttl=ttl,
                tags=entry_tags,
            )

        wrapper.cache = target  # type: ignore[attr-defined]
        return wrapper

    return decorator
