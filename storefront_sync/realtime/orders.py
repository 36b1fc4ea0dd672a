"""Newest-first order list and the change-event reconciliation rules."""

from collections.abc import Callable
from collections.abc import Iterable
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from logging import getLogger
from typing import Any
from typing import Optional

from storefront_sync.exceptions import MalformedEventError

from .models import OrderEvent
from .models import OrderEventType
from .models import OrderRecord
from .models import status_label
from .normalize import event_order_id
from .normalize import normalize_order

logger = getLogger(__name__)


class OrderList:
    """Ordered, id-unique list of orders, newest first."""

    def __init__(self, records: Iterable[OrderRecord] = ()) -> None:
        self._records: list[OrderRecord] = []
        self.load(records)

    def load(self, records: Iterable[OrderRecord]) -> None:
        """Replace the list with a fetched baseline, keeping the given order.

        When the baseline repeats an id, the first occurrence wins.
        """
        seen: set[str] = set()
        baseline = []
        for record in records:
            if record.id in seen:
                continue
            seen.add(record.id)
            baseline.append(record)
        self._records = baseline

    def _index(self, order_id: str) -> Optional[int]:
        for index, record in enumerate(self._records):
            if record.id == order_id:
                return index
        return None

    def get(self, order_id: str) -> Optional[OrderRecord]:
        index = self._index(order_id)
        return None if index is None else self._records[index]

    def insert(self, record: OrderRecord) -> bool:
        """Prepend ``record`` unless its id is already listed."""
        if record.id in self:
            return False
        self._records.insert(0, record)
        return True

    def replace(self, record: OrderRecord) -> Optional[OrderRecord]:
        """Replace the listed order with the same id, keeping its position.

        Returns:
            The replaced record, or None when the id is not listed
        """
        index = self._index(record.id)
        if index is None:
            return None
        previous = self._records[index]
        self._records[index] = record
        return previous

    def remove(self, order_id: str) -> Optional[OrderRecord]:
        index = self._index(order_id)
        if index is None:
            return None
        return self._records.pop(index)

    def ids(self) -> list[str]:
        return [record.id for record in self._records]

    def snapshot(self) -> list[OrderRecord]:
        return list(self._records)

    def __contains__(self, order_id: object) -> bool:
        return any(record.id == order_id for record in self._records)

    def __iter__(self) -> Iterator[OrderRecord]:
        return iter(list(self._records))

    def __len__(self) -> int:
        return len(self._records)


class EventOutcome(str, Enum):
    INSERTED = "inserted"
    DUPLICATE = "duplicate"
    UPDATED = "updated"
    UPDATE_DROPPED = "update_dropped"
    DELETED = "deleted"
    DELETE_MISSED = "delete_missed"
    IGNORED = "ignored"


@dataclass
class OrderHandlers:
    """Callbacks fired as events change the list. All are optional."""

    on_new_order: Optional[Callable[[OrderRecord], Any]] = None
    on_order_updated: Optional[Callable[[OrderRecord], Any]] = None
    on_status_change: Optional[Callable[[OrderRecord, str, str], Any]] = None
    on_order_deleted: Optional[Callable[[str], Any]] = None


def notify(callback: Optional[Callable[..., Any]], *args: Any) -> None:
    if callback is None:
        return
    try:
        callback(*args)
    except Exception:
        logger.exception("Order callback %r failed", callback)


def _delete(
    orders: OrderList, order_id: str, handlers: OrderHandlers
) -> EventOutcome:
    if orders.remove(order_id) is None:
        return EventOutcome.DELETE_MISSED
    notify(handlers.on_order_deleted, order_id)
    return EventOutcome.DELETED


def apply_event(
    orders: OrderList,
    event: OrderEvent,
    handlers: Optional[OrderHandlers] = None,
) -> EventOutcome:
    """Merge one change event into ``orders`` and fire the matching callbacks.

    - INSERT prepends unseen orders; a redelivered INSERT is a no-op.
    - UPDATE replaces the listed order in place; updates for unknown ids are
      dropped, the next full fetch reconciles them. A soft-delete marker
      removes the order instead.
    - DELETE removes the order; unknown ids are a no-op.

    Raises:
        MalformedEventError: If the event carries no usable record
    """
    handlers = handlers or OrderHandlers()

    if event.event_type is OrderEventType.DELETE:
        order_id = event_order_id(event)
        if order_id is None:
            msg = "DELETE event has no order id"
            raise MalformedEventError(msg)
        return _delete(orders, order_id, handlers)

    record = normalize_order(event.new)

    if event.event_type is OrderEventType.INSERT:
        if record.is_deleted:
            return EventOutcome.IGNORED
        if not orders.insert(record):
            logger.debug("Ignoring duplicate INSERT for order <%s>", record.id)
            return EventOutcome.DUPLICATE
        notify(handlers.on_new_order, record)
        return EventOutcome.INSERTED

    if record.is_deleted:
        return _delete(orders, record.id, handlers)

    previous = orders.replace(record)
    if previous is None:
        logger.debug("Dropping UPDATE for unknown order <%s>", record.id)
        return EventOutcome.UPDATE_DROPPED

    old_status = (event.old or {}).get("status") or previous.status.value
    if old_status != record.status.value:
        notify(
            handlers.on_status_change,
            record,
            status_label(old_status),
            record.status_label,
        )
    notify(handlers.on_order_updated, record)
    return EventOutcome.UPDATED
