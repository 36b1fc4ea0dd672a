"""Type definitions and serialization helpers for storefront-sync."""

from dataclasses import dataclass
from dataclasses import field
from decimal import Decimal
from typing import Any

import orjson
from pydantic import BaseModel


def _default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    msg = f"Object of type {type(obj).__name__} is not JSON serializable"
    raise TypeError(msg)


def dumps(value: Any) -> str:
    """Serialize ``value`` to JSON text.

    Non-string dict keys are written as strings, so ``{1: "a"}`` reads back
    as ``{"1": "a"}``.

    Raises:
        orjson.JSONEncodeError: If the value (or something inside it) is not serializable
    """
    return orjson.dumps(
        value, default=_default, option=orjson.OPT_NON_STR_KEYS
    ).decode("utf-8")


def loads(raw: str | bytes) -> Any:
    """Parse JSON text produced by :func:`dumps`."""
    return orjson.loads(raw)


@dataclass
class CacheEntry:
    """A cached payload together with its write time, lifetime and tags.

    Args:
        data: The cached payload (anything :func:`dumps` accepts)
        timestamp: Epoch milliseconds when the entry was written
        ttl: Lifetime in milliseconds
        tags: Invalidation groups the entry belongs to
    """

    data: Any
    timestamp: int
    ttl: int
    tags: tuple[str, ...] = ()

    def is_live(self, now: int) -> bool:
        return now - self.timestamp < self.ttl

    def expires_at(self) -> int:
        return self.timestamp + self.ttl

    def to_json(self) -> str:
        return dumps(
            {
                "data": self.data,
                "timestamp": self.timestamp,
                "ttl": self.ttl,
                "tags": list(self.tags),
            }
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> "CacheEntry":
        """Rebuild an entry from its stored JSON text.

        Raises:
            ValueError: If the text is not JSON or does not look like an entry
        """
        payload = loads(raw)
        if not isinstance(payload, dict) or "data" not in payload:
            msg = "Stored value is not a cache entry"
            raise ValueError(msg)

        timestamp = payload.get("timestamp")
        ttl = payload.get("ttl")
        tags = payload.get("tags") or []
        if (
            not isinstance(timestamp, int)
            or not isinstance(ttl, int)
            or isinstance(timestamp, bool)
            or isinstance(ttl, bool)
        ):
            msg = "Cache entry timestamp and ttl must be integers"
            raise ValueError(msg)
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            msg = "Cache entry tags must be a list of strings"
            raise ValueError(msg)

        return cls(data=payload["data"], timestamp=timestamp, ttl=ttl, tags=tuple(tags))


@dataclass
class CacheEntryInfo:
    """Diagnostic view of a stored entry, as listed by ``TaggedCache.entries``."""

    key: str
    timestamp: int
    ttl: int
    tags: list[str] = field(default_factory=list)
    is_expired: bool = False
    ttl_remaining_ms: int = 0


class CacheTags:
    """Standard tag names used by storefront callers."""

    STORES = "stores"

    @staticmethod
    def store(store_id: str) -> str:
        return f"store:{store_id}"

    @staticmethod
    def products(store_id: str) -> str:
        return f"products:{store_id}"

    @staticmethod
    def categories(store_id: str) -> str:
        return f"categories:{store_id}"

    @staticmethod
    def orders(customer_id: str) -> str:
        return f"orders:{customer_id}"

    @staticmethod
    def order(order_id: str) -> str:
        return f"order:{order_id}"

    @staticmethod
    def profile(user_id: str) -> str:
        return f"profile:{user_id}"
