"""Subscription scopes: who the order stream is for and how it is filtered."""

from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Optional

from storefront_sync.config import RealtimeConfig


@dataclass(frozen=True)
class CustomerScope:
    """Orders placed by one customer."""

    customer_id: Optional[str]

    def is_ready(self) -> bool:
        return bool(self.customer_id)

    def channel_name(self) -> str:
        return f"customer-orders:{self.customer_id}"

    def filter(self) -> str:
        return f"customer_id=eq.{self.customer_id}"


@dataclass(frozen=True)
class MerchantScope:
    """Orders placed in any of a merchant's stores."""

    merchant_id: Optional[str]
    store_ids: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "store_ids", tuple(s for s in self.store_ids if s))

    def is_ready(self) -> bool:
        return bool(self.merchant_id) and len(self.store_ids) > 0

    def channel_name(self) -> str:
        return f"merchant-orders:{self.merchant_id}"

    def filter(self) -> str:
        if len(self.store_ids) == 1:
            return f"store_id=eq.{self.store_ids[0]}"
        return f"store_id=in.({','.join(self.store_ids)})"


SubscriptionScope = CustomerScope | MerchantScope


def build_event_spec(scope: SubscriptionScope, config: RealtimeConfig) -> dict[str, Any]:
    """Event specification registered on the provider channel."""
    return {
        "event": "*",
        "schema": config.schema_name,
        "table": config.table,
        "filter": scope.filter(),
    }


def build_channel_params(config: RealtimeConfig) -> dict[str, Any]:
    """Options passed when opening a channel; providers ignore what they don't support."""
    return {"events_per_second": config.events_per_second}
