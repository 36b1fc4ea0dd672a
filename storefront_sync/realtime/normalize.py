"""Boundary normalization of inbound change-event payloads."""

from collections.abc import Mapping
from typing import Any
from typing import Optional

from pydantic import ValidationError

from storefront_sync.exceptions import MalformedEventError

from .models import OrderEvent
from .models import OrderRecord

ID_KEYS = ("id", "order_id", "orderId")


def _resolve_id(raw: Mapping[str, Any]) -> Optional[str]:
    for key in ID_KEYS:
        value = raw.get(key)
        if value is not None and value != "":
            return str(value)
    return None


def normalize_order(raw: Any) -> OrderRecord:
    """Convert a raw event record into the canonical :class:`OrderRecord`.

    Null and empty-string values fall back to the field defaults, so a payload that only
    carries ``{"id": ..., "status": ...}`` still yields a full record.

    Raises:
        MalformedEventError: If the payload has no resolvable id or fails validation
    """
    if not isinstance(raw, Mapping):
        msg = f"Order payload must be a mapping, got {type(raw).__name__}"
        raise MalformedEventError(msg)

    order_id = _resolve_id(raw)
    if order_id is None:
        msg = "Order payload has no id"
        raise MalformedEventError(msg)

    cleaned = {
        k: v for k, v in raw.items() if v is not None and v != "" and k not in ID_KEYS
    }
    cleaned["id"] = order_id
    try:
        return OrderRecord.model_validate(cleaned)
    except ValidationError as e:
        msg = f"Order payload <{order_id}> is invalid: {e.error_count()} validation error(s)"
        raise MalformedEventError(msg) from e


def parse_event(payload: Any) -> OrderEvent:
    """Validate the envelope of a change event.

    Raises:
        MalformedEventError: If the payload is not a recognizable change event
    """
    if isinstance(payload, OrderEvent):
        return payload
    try:
        return OrderEvent.model_validate(payload)
    except ValidationError as e:
        msg = "Change event envelope is invalid"
        raise MalformedEventError(msg) from e


def event_order_id(event: OrderEvent) -> Optional[str]:
    """Return the order id an event refers to, preferring the new record."""
    for record in (event.new, event.old):
        if record:
            order_id = _resolve_id(record)
            if order_id is not None:
                return order_id
    return None
