"""Realtime order synchronization over a push subscription provider."""

from .channels import CustomerScope
from .channels import MerchantScope
from .channels import SubscriptionScope
from .models import ConnectionState
from .models import ConnectionStatus
from .models import OrderEvent
from .models import OrderEventType
from .models import OrderRecord
from .models import OrderStatus
from .models import SubscriptionState
from .models import status_label
from .normalize import normalize_order
from .orders import EventOutcome
from .orders import OrderHandlers
from .orders import OrderList
from .orders import apply_event
from .provider import LocalRealtimeClient
from .provider import RealtimeChannel
from .provider import RealtimeClient
from .sync import RealtimeOrderSync
from .sync import Subscription

__all__ = [
    "ConnectionState",
    "ConnectionStatus",
    "CustomerScope",
    "EventOutcome",
    "LocalRealtimeClient",
    "MerchantScope",
    "OrderEvent",
    "OrderEventType",
    "OrderHandlers",
    "OrderList",
    "OrderRecord",
    "OrderStatus",
    "RealtimeChannel",
    "RealtimeClient",
    "RealtimeOrderSync",
    "Subscription",
    "SubscriptionScope",
    "SubscriptionState",
    "apply_event",
    "normalize_order",
    "status_label",
]
