"""Order and connection models for realtime order synchronization."""

from dataclasses import dataclass
from datetime import datetime
from datetime import timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from typing import Optional

from pydantic import AliasChoices
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


STATUS_LABELS = {
    OrderStatus.PENDING: "Pendente",
    OrderStatus.CONFIRMED: "Confirmado",
    OrderStatus.PREPARING: "Preparando",
    OrderStatus.READY: "Pronto",
    OrderStatus.OUT_FOR_DELIVERY: "Saiu para Entrega",
    OrderStatus.DELIVERED: "Entregue",
    OrderStatus.CANCELLED: "Cancelado",
}


def status_label(value: Optional[str]) -> str:
    """Human label for a status value; unknown values are returned as-is."""
    if not value:
        return ""
    try:
        return OrderStatus(value).label
    except ValueError:
        return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _field(default: Any, snake: str, camel: str, **kwargs: Any) -> Any:
    return Field(default=default, validation_alias=AliasChoices(snake, camel), **kwargs)


class OrderRecord(BaseModel):
    """Canonical order shape.

    Change events may carry snake_case or camelCase keys; both are accepted
    on input, and the model always exposes snake_case attributes.
    """

    model_config = ConfigDict(
        populate_by_name=True, extra="ignore", coerce_numbers_to_str=True
    )

    id: str = Field(min_length=1, validation_alias=AliasChoices("id", "order_id", "orderId"))
    store_id: str = _field("", "store_id", "storeId")
    customer_id: str = _field("", "customer_id", "customerId")
    status: OrderStatus = OrderStatus.PENDING
    total_amount: Decimal = _field(Decimal(0), "total_amount", "totalAmount")
    delivery_fee: Decimal = _field(Decimal(0), "delivery_fee", "deliveryFee")
    payment_method: str = _field("cash", "payment_method", "paymentMethod")
    payment_status: str = _field("pending", "payment_status", "paymentStatus")
    fulfillment_method: str = _field("delivery", "fulfillment_method", "fulfillmentMethod")
    observations: Optional[str] = None
    cancellation_reason: Optional[str] = _field(None, "cancellation_reason", "cancellationReason")
    deleted_at: Optional[datetime] = _field(None, "deleted_at", "deletedAt")
    store_name: str = _field("", "store_name", "storeName")
    customer_name: str = _field("", "customer_name", "customerName")
    created_at: datetime = Field(
        default_factory=_utcnow, validation_alias=AliasChoices("created_at", "createdAt")
    )
    updated_at: datetime = Field(
        default_factory=_utcnow, validation_alias=AliasChoices("updated_at", "updatedAt")
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def status_label(self) -> str:
        return self.status.label


class OrderEventType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class OrderEvent(BaseModel):
    """A change event as delivered by the push provider."""

    model_config = ConfigDict(populate_by_name=True)

    event_type: OrderEventType = Field(validation_alias=AliasChoices("eventType", "event_type"))
    new: Optional[dict[str, Any]] = None
    old: Optional[dict[str, Any]] = None
    errors: Optional[list[Any]] = None


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class SubscriptionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    ERROR = "error"
    TIMED_OUT = "timed_out"
    CLOSED = "closed"

    @property
    def connection_status(self) -> ConnectionStatus:
        if self is SubscriptionState.SUBSCRIBED:
            return ConnectionStatus.CONNECTED
        if self is SubscriptionState.CONNECTING:
            return ConnectionStatus.CONNECTING
        if self in (SubscriptionState.ERROR, SubscriptionState.TIMED_OUT):
            return ConnectionStatus.ERROR
        return ConnectionStatus.DISCONNECTED


@dataclass
class ConnectionState:
    """Health of one subscription, as shown to the UI."""

    channel: Optional[str] = None
    state: SubscriptionState = SubscriptionState.IDLE

    @property
    def status(self) -> ConnectionStatus:
        return self.state.connection_status

    @property
    def is_connected(self) -> bool:
        return self.state is SubscriptionState.SUBSCRIBED
