"""Tests for change-event payload normalization."""

from decimal import Decimal

import pytest

from storefront_sync.exceptions import MalformedEventError
from storefront_sync.realtime.models import OrderEvent
from storefront_sync.realtime.models import OrderEventType
from storefront_sync.realtime.models import OrderStatus
from storefront_sync.realtime.normalize import event_order_id
from storefront_sync.realtime.normalize import normalize_order
from storefront_sync.realtime.normalize import parse_event


def test_normalize_snake_case_record() -> None:
    record = normalize_order(
        {
            "id": "o1",
            "store_id": "s1",
            "customer_id": "c1",
            "status": "preparing",
            "total_amount": 42.5,
            "created_at": "2024-05-01T12:00:00Z",
            "payment_method": "pix",
        }
    )

    assert record.id == "o1"
    assert record.store_id == "s1"
    assert record.customer_id == "c1"
    assert record.status is OrderStatus.PREPARING
    assert record.total_amount == Decimal("42.5")
    assert record.created_at.year == 2024
    assert record.payment_method == "pix"


def test_normalize_camel_case_record() -> None:
    record = normalize_order(
        {
            "id": "o1",
            "storeId": "s1",
            "customerId": "c1",
            "status": "out_for_delivery",
            "totalAmount": "19.90",
            "deliveryFee": 5,
            "customerName": "Ana",
        }
    )

    assert record.store_id == "s1"
    assert record.customer_id == "c1"
    assert record.status is OrderStatus.OUT_FOR_DELIVERY
    assert record.total_amount == Decimal("19.90")
    assert record.delivery_fee == Decimal("5")
    assert record.customer_name == "Ana"


def test_normalize_fills_defaults() -> None:
    record = normalize_order({"id": "o1", "store_id": None, "observations": None})

    assert record.store_id == ""
    assert record.customer_id == ""
    assert record.status is OrderStatus.PENDING
    assert record.total_amount == Decimal(0)
    assert record.fulfillment_method == "delivery"
    assert record.observations is None
    assert record.deleted_at is None
    assert record.created_at is not None


def test_normalize_empty_strings_fall_back_to_defaults() -> None:
    """Test that blank status and amounts are defaulted instead of rejected."""
    record = normalize_order(
        {"id": "o1", "status": "", "total_amount": "", "deliveryFee": "", "deleted_at": ""}
    )

    assert record.status is OrderStatus.PENDING
    assert record.total_amount == Decimal(0)
    assert record.delivery_fee == Decimal(0)
    assert record.is_deleted is False


def test_normalize_order_id_fallback() -> None:
    assert normalize_order({"order_id": "o9"}).id == "o9"
    assert normalize_order({"id": "", "orderId": "o8"}).id == "o8"
    assert normalize_order({"id": 123}).id == "123"


def test_normalize_soft_delete_marker() -> None:
    record = normalize_order({"id": "o1", "deletedAt": "2024-05-01T12:00:00Z"})

    assert record.is_deleted is True


@pytest.mark.parametrize(
    "raw",
    [
        None,
        ["o1"],
        {},
        {"status": "pending"},
        {"id": "o1", "status": "teleported"},
        {"id": "o1", "total_amount": "a lot"},
    ],
)
def test_normalize_rejects_malformed_payloads(raw) -> None:
    with pytest.raises(MalformedEventError):
        normalize_order(raw)


def test_parse_event_accepts_provider_payload() -> None:
    event = parse_event({"eventType": "UPDATE", "new": {"id": "o1"}, "old": {"id": "o1"}})

    assert event.event_type is OrderEventType.UPDATE
    assert event.new == {"id": "o1"}
    assert event.errors is None


def test_parse_event_rejects_unknown_type() -> None:
    with pytest.raises(MalformedEventError):
        parse_event({"eventType": "TRUNCATE"})

    with pytest.raises(MalformedEventError):
        parse_event("INSERT")


def test_event_order_id_prefers_new_then_old() -> None:
    event = OrderEvent(event_type=OrderEventType.DELETE, new={}, old={"order_id": "o2"})
    assert event_order_id(event) == "o2"

    event = OrderEvent(event_type=OrderEventType.UPDATE, new={"id": "o1"}, old={"id": "o0"})
    assert event_order_id(event) == "o1"

    event = OrderEvent(event_type=OrderEventType.DELETE)
    assert event_order_id(event) is None
