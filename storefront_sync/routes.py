"""Diagnostic routes exposing cache contents and realtime connection health."""

from collections.abc import Mapping
from dataclasses import asdict
from typing import Any
from typing import Optional

from fastapi import APIRouter
from fastapi import FastAPI

from .cache import TaggedCache
from .proxy import StorageProxy
from .realtime.sync import RealtimeOrderSync


def _resolve_cache(cache: Optional[TaggedCache]) -> Optional[TaggedCache]:
    if cache is not None:
        return cache
    backend = StorageProxy.current()
    return TaggedCache(backend) if backend is not None else None


def add_routes(
    app: FastAPI,
    cache: Optional[TaggedCache] = None,
    syncs: Optional[Mapping[str, RealtimeOrderSync]] = None,
    prefix: str = "",
) -> None:
    """Mount the diagnostic routes on ``app``.

    Args:
        app: The FastAPI application
        cache: Cache to inspect; defaults to one on the process-wide storage backend
        syncs: Realtime subscriptions to report on, by display name
        prefix: Path prefix for the routes, e.g. ``"/admin"``
    """
    router = APIRouter(prefix=prefix)

    @router.get("/cache-entries")
    async def cache_entries() -> dict[str, Any]:
        target = _resolve_cache(cache)
        entries = await target.entries() if target is not None else []
        active = sum(1 for entry in entries if not entry.is_expired)
        return {
            "entries": [asdict(entry) for entry in entries],
            "total_entries": len(entries),
            "active_entries": active,
            "expired_entries": len(entries) - active,
        }

    @router.get("/realtime-status")
    async def realtime_status() -> dict[str, Any]:
        subscriptions = [
            {
                "name": name,
                "channel": sync.connection.channel,
                "state": sync.state.value,
                "status": sync.connection.status.value,
                "is_connected": sync.is_connected,
                "orders_count": len(sync.orders),
            }
            for name, sync in (syncs or {}).items()
        ]
        return {
            "subscriptions": subscriptions,
            "total_subscriptions": len(subscriptions),
            "connected_subscriptions": sum(1 for s in subscriptions if s["is_connected"]),
        }

    app.include_router(router)
