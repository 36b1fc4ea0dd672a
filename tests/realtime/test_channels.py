"""Tests for subscription scopes and the in-process provider."""

from storefront_sync.config import RealtimeConfig
from storefront_sync.realtime.channels import CustomerScope
from storefront_sync.realtime.channels import MerchantScope
from storefront_sync.realtime.channels import build_channel_params
from storefront_sync.realtime.channels import build_event_spec
from storefront_sync.realtime.provider import CHANNEL_ERROR
from storefront_sync.realtime.provider import CLOSED
from storefront_sync.realtime.provider import SUBSCRIBED
from storefront_sync.realtime.provider import TIMED_OUT
from storefront_sync.realtime.provider import LocalRealtimeClient


def test_customer_scope() -> None:
    scope = CustomerScope("c1")

    assert scope.is_ready() is True
    assert scope.channel_name() == "customer-orders:c1"
    assert scope.filter() == "customer_id=eq.c1"
    assert CustomerScope(None).is_ready() is False
    assert CustomerScope("").is_ready() is False


def test_merchant_scope_single_store() -> None:
    scope = MerchantScope("m1", ("s1",))

    assert scope.is_ready() is True
    assert scope.channel_name() == "merchant-orders:m1"
    assert scope.filter() == "store_id=eq.s1"


def test_merchant_scope_many_stores() -> None:
    scope = MerchantScope("m1", ["s1", "", "s2"])  # type: ignore[arg-type]

    assert scope.store_ids == ("s1", "s2")
    assert scope.filter() == "store_id=in.(s1,s2)"
    assert scope == MerchantScope("m1", ("s1", "s2"))


def test_merchant_scope_needs_identity_and_stores() -> None:
    assert MerchantScope(None, ("s1",)).is_ready() is False
    assert MerchantScope("m1").is_ready() is False


def test_build_event_spec() -> None:
    spec = build_event_spec(CustomerScope("c1"), RealtimeConfig(schema_name="orders", table="orders"))

    assert spec == {
        "event": "*",
        "schema": "orders",
        "table": "orders",
        "filter": "customer_id=eq.c1",
    }


def test_build_channel_params() -> None:
    assert build_channel_params(RealtimeConfig(events_per_second=10)) == {"events_per_second": 10}


def test_local_client_records_channel_params() -> None:
    client = LocalRealtimeClient()

    channel = client.channel("c", {"events_per_second": 3})

    assert channel.params == {"events_per_second": 3}
    assert client.channel("d").params == {}


def test_local_channel_delivers_matching_events() -> None:
    client = LocalRealtimeClient()
    received = []
    statuses = []
    channel = client.channel("merchant-orders:m1")
    channel.on("postgres_changes", {"event": "*", "filter": "store_id=in.(s1,s2)"}, received.append)
    channel.subscribe(lambda status, error=None: statuses.append(status))

    assert channel.state == "joined"
    assert statuses == [SUBSCRIBED]

    assert client.publish({"eventType": "INSERT", "new": {"id": "o1", "store_id": "s2"}}) == 1
    assert client.publish({"eventType": "INSERT", "new": {"id": "o2", "store_id": "s3"}}) == 0
    assert client.publish({"eventType": "DELETE", "old": {"id": "o1", "store_id": "s1"}}) == 1
    assert [payload["eventType"] for payload in received] == ["INSERT", "DELETE"]


def test_local_channel_event_type_filter() -> None:
    client = LocalRealtimeClient()
    received = []
    client.channel("c").on("postgres_changes", {"event": "UPDATE"}, received.append).subscribe()

    client.publish({"eventType": "INSERT", "new": {"id": "o1"}})
    client.publish({"eventType": "UPDATE", "new": {"id": "o1"}})

    assert len(received) == 1


def test_local_channel_handshake_without_auto_acknowledge() -> None:
    client = LocalRealtimeClient(auto_acknowledge=False)
    statuses = []
    channel = client.channel("c").subscribe(lambda status, error=None: statuses.append(status))

    assert channel.state == "joining"
    assert client.publish({"eventType": "INSERT", "new": {"id": "o1"}}) == 0

    channel.time_out()
    channel.fail(RuntimeError("boom"))
    assert statuses == [TIMED_OUT, CHANNEL_ERROR]
    assert channel.state == "errored"


def test_remove_channel_closes_it() -> None:
    client = LocalRealtimeClient()
    statuses = []
    channel = client.channel("c").subscribe(lambda status, error=None: statuses.append(status))

    client.remove_channel(channel)

    assert channel.state == "closed"
    assert statuses == [SUBSCRIBED, CLOSED]
    assert client.get_channels() == []
