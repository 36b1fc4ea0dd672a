"""Tests for the diagnostic routes."""

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from storefront_sync import add_routes
from storefront_sync.backends import MemoryStorage
from storefront_sync.cache import TaggedCache
from storefront_sync.proxy import StorageProxy
from storefront_sync.realtime import CustomerScope
from storefront_sync.realtime import LocalRealtimeClient
from storefront_sync.realtime import MerchantScope
from storefront_sync.realtime import RealtimeOrderSync


@pytest.fixture
def app():
    """Create a test FastAPI application."""
    return FastAPI()


@pytest.fixture
def client(app):
    """Create a test client for the FastAPI application."""
    return TestClient(app)


def async_client(app: FastAPI) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


class TestCacheEntriesRoute:
    """Test suite for the /cache-entries route."""

    def test_cache_entries_without_backend(self, app, client):
        """Test /cache-entries returns empty when no backend is configured."""
        add_routes(app)

        response = client.get("/cache-entries")
        assert response.status_code == 200
        data = response.json()
        assert data["entries"] == []
        assert data["total_entries"] == 0
        assert data["active_entries"] == 0
        assert data["expired_entries"] == 0

    def test_cache_entries_uses_proxy_backend(self, app, client):
        StorageProxy.set_backend(MemoryStorage())
        add_routes(app)

        response = client.get("/cache-entries")
        assert response.status_code == 200
        assert response.json()["total_entries"] == 0

    @pytest.mark.asyncio
    async def test_cache_entries_with_entries(self, app, tagged_cache, clock):
        """Test /cache-entries lists live and expired entries."""
        add_routes(app, cache=tagged_cache)
        await tagged_cache.set("stores", [{"id": "s1"}], ttl=60_000, tags=["stores"])
        await tagged_cache.set("order:o1", {"id": "o1"}, ttl=10, tags=["order:o1"])
        clock.advance(10)

        async with async_client(app) as http:
            response = await http.get("/cache-entries")

        assert response.status_code == 200
        data = response.json()
        assert data["total_entries"] == 2
        assert data["active_entries"] == 1
        assert data["expired_entries"] == 1

        entries = {entry["key"]: entry for entry in data["entries"]}
        assert entries["stores"]["tags"] == ["stores"]
        assert entries["stores"]["is_expired"] is False
        assert entries["stores"]["ttl_remaining_ms"] == 59_990
        assert entries["order:o1"]["is_expired"] is True

    @pytest.mark.asyncio
    async def test_cache_entries_with_prefix(self, app, tagged_cache):
        """Test /cache-entries route with custom prefix."""
        add_routes(app, cache=tagged_cache, prefix="/admin")
        await tagged_cache.set("stores", [])

        async with async_client(app) as http:
            response = await http.get("/admin/cache-entries")
            missing = await http.get("/cache-entries")

        assert response.status_code == 200
        assert response.json()["total_entries"] == 1
        assert missing.status_code == 404


class TestRealtimeStatusRoute:
    """Test suite for the /realtime-status route."""

    def test_realtime_status_without_subscriptions(self, app, client):
        add_routes(app)

        response = client.get("/realtime-status")
        assert response.status_code == 200
        assert response.json() == {
            "subscriptions": [],
            "total_subscriptions": 0,
            "connected_subscriptions": 0,
        }

    @pytest.mark.asyncio
    async def test_realtime_status_reports_each_subscription(self, app):
        """Test /realtime-status reflects connection state and list size."""
        realtime = LocalRealtimeClient()
        customer = RealtimeOrderSync(realtime, CustomerScope("c1"))
        merchant = RealtimeOrderSync(realtime, MerchantScope("m1", ()))
        add_routes(
            app,
            cache=TaggedCache(MemoryStorage()),
            syncs={"customer": customer, "merchant": merchant},
        )

        await customer.start()
        await merchant.start()
        realtime.publish({"eventType": "INSERT", "new": {"id": "o1", "customer_id": "c1"}})
        await customer.drain()

        async with async_client(app) as http:
            response = await http.get("/realtime-status")
        await customer.close()

        assert response.status_code == 200
        data = response.json()
        assert data["total_subscriptions"] == 2
        assert data["connected_subscriptions"] == 1

        subscriptions = {item["name"]: item for item in data["subscriptions"]}
        assert subscriptions["customer"] == {
            "name": "customer",
            "channel": "customer-orders:c1",
            "state": "subscribed",
            "status": "connected",
            "is_connected": True,
            "orders_count": 1,
        }
        assert subscriptions["merchant"]["state"] == "idle"
        assert subscriptions["merchant"]["status"] == "disconnected"
        assert subscriptions["merchant"]["is_connected"] is False


class UnreachableStorage(MemoryStorage):
    async def keys(self, prefix: str = "") -> list[str]:
        msg = "connection lost"
        raise OSError(msg)


def test_cache_entries_with_unreachable_backend(app, client):
    """Test /cache-entries degrades to an empty listing when storage is down."""
    add_routes(app, cache=TaggedCache(UnreachableStorage()))

    response = client.get("/cache-entries")
    assert response.status_code == 200
    assert response.json()["total_entries"] == 0
