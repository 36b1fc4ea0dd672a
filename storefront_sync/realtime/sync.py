import asyncio
import contextlib
import inspect
from collections.abc import Callable
from collections.abc import Iterable
from dataclasses import dataclass
from dataclasses import field
from functools import partial
from logging import getLogger
from typing import Any
from typing import Optional

from storefront_sync.config import RealtimeConfig
from storefront_sync.exceptions import MalformedEventError

from .channels import SubscriptionScope
from .channels import build_channel_params
from .channels import build_event_spec
from .models import ConnectionState
from .models import OrderEvent
from .models import OrderRecord
from .models import SubscriptionState
from .normalize import parse_event
from .orders import EventOutcome
from .orders import OrderHandlers
from .orders import OrderList
from .orders import apply_event
from .orders import notify
from .provider import CHANNEL_ERROR
from .provider import CLOSED
from .provider import STATE_JOINED
from .provider import SUBSCRIBED
from .provider import TIMED_OUT
from .provider import RealtimeChannel
from .provider import RealtimeClient

logger = getLogger(__name__)

# Event binding name for database change events
POSTGRES_CHANGES = "postgres_changes"

_STATUS_STATES = {
    SUBSCRIBED: SubscriptionState.SUBSCRIBED,
    CHANNEL_ERROR: SubscriptionState.ERROR,
    TIMED_OUT: SubscriptionState.TIMED_OUT,
    CLOSED: SubscriptionState.CLOSED,
}


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass(eq=False)
class Subscription:
    """One open channel together with everything that must die with it.

    Events handed over by the provider are queued and applied by a single
    consumer task, so they take effect strictly in delivery order.
    """

    scope: SubscriptionScope
    channel_name: str
    channel: Optional[RealtimeChannel] = None
    queue: asyncio.Queue = field(default_factory=asyncio.Queue)
    consumer: Optional[asyncio.Task] = None
    check_handle: Optional[asyncio.TimerHandle] = None
    active: bool = True

    def enqueue(self, payload: Any) -> None:
        if self.active:
            self.queue.put_nowait(payload)

    async def cancel(self) -> None:
        self.active = False
        if self.check_handle is not None:
            self.check_handle.cancel()
            self.check_handle = None
        if self.consumer is not None:
            self.consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self.consumer
            self.consumer = None


class RealtimeOrderSync:
    """Keep a newest-first order list in sync with a push channel.

    The subscription is driven by its dependencies: it stays idle while
    disabled or while the scope lacks identity (customer id, or merchant id
    plus store ids), and is rebuilt whenever the scope or the enabled flag
    changes. There is no automatic retry; after an error or timeout the
    caller decides whether to ``reconnect()``.

    Provider failures never raise into the caller. They show up only in
    :attr:`connection`.

    Example:
        sync = RealtimeOrderSync(client, CustomerScope("c1"), on_new_order=toast)
        sync.load(await fetch_orders("c1"))
        async with sync:
            ...
    """

    def __init__(
        self,
        client: Optional[RealtimeClient],
        scope: Optional[SubscriptionScope] = None,
        *,
        enabled: bool = True,
        config: Optional[RealtimeConfig] = None,
        on_new_order: Optional[Callable[[OrderRecord], Any]] = None,
        on_order_updated: Optional[Callable[[OrderRecord], Any]] = None,
        on_status_change: Optional[Callable[[OrderRecord, str, str], Any]] = None,
        on_order_deleted: Optional[Callable[[str], Any]] = None,
        on_event: Optional[Callable[[OrderEvent], Any]] = None,
    ) -> None:
        self.client = client
        self.scope = scope
        self.enabled = enabled
        self.config = config or RealtimeConfig()
        self.handlers = OrderHandlers(
            on_new_order=on_new_order,
            on_order_updated=on_order_updated,
            on_status_change=on_status_change,
            on_order_deleted=on_order_deleted,
        )
        self.on_event = on_event
        self.orders = OrderList()
        self.connection = ConnectionState()
        self._subscription: Optional[Subscription] = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> SubscriptionState:
        return self.connection.state

    @property
    def is_connected(self) -> bool:
        return self.connection.is_connected

    def load(self, records: Iterable[OrderRecord]) -> None:
        """Seed the list with the result of a full fetch."""
        self.orders.load(records)

    async def start(self) -> None:
        async with self._lock:
            await self._setup()

    async def set_scope(self, scope: Optional[SubscriptionScope]) -> None:
        if scope == self.scope and self._subscription is not None:
            return
        self.scope = scope
        await self.start()

    async def set_enabled(self, enabled: bool) -> None:
        if enabled == self.enabled and (self._subscription is not None or not enabled):
            return
        self.enabled = enabled
        await self.start()

    async def reconnect(self) -> None:
        logger.info("Reconnecting realtime orders channel")
        await self.start()

    async def close(self) -> None:
        async with self._lock:
            await self._teardown()
            self._set_state(SubscriptionState.CLOSED)

    async def drain(self) -> None:
        """Wait until every event received so far has been applied."""
        subscription = self._subscription
        if subscription is not None:
            await subscription.queue.join()

    async def __aenter__(self) -> "RealtimeOrderSync":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _set_state(self, state: SubscriptionState, channel: Optional[str] = None) -> None:
        if channel is not None:
            self.connection.channel = channel
        self.connection.state = state

    async def _setup(self) -> None:
        await self._teardown()

        if not self.enabled:
            logger.info("Realtime orders disabled")
            self._set_state(SubscriptionState.IDLE)
            return
        if self.client is None:
            logger.warning("No realtime client configured. Realtime orders disabled.")
            self._set_state(SubscriptionState.IDLE)
            return
        if self.scope is None or not self.scope.is_ready():
            logger.info("Subscription identity not available yet, staying idle")
            self._set_state(SubscriptionState.IDLE)
            return

        name = self.scope.channel_name()
        self._set_state(SubscriptionState.CONNECTING, name)
        subscription = Subscription(scope=self.scope, channel_name=name)
        self._subscription = subscription

        try:
            channel = self.client.channel(name, build_channel_params(self.config))
            subscription.channel = channel
            await _resolve(
                channel.on(
                    POSTGRES_CHANGES,
                    build_event_spec(self.scope, self.config),
                    subscription.enqueue,
                )
            )
            subscription.consumer = asyncio.create_task(self._consume(subscription))
            await _resolve(channel.subscribe(partial(self._on_status, subscription)))
        except Exception:
            logger.exception("Failed to subscribe to channel <%s>", name)
            await self._teardown()
            self._set_state(SubscriptionState.ERROR, name)
            return

        logger.info("Subscribing to channel <%s> (%s)", name, self.scope.filter())
        self._check_connection(subscription)
        subscription.check_handle = asyncio.get_running_loop().call_later(
            self.config.connection_check_delay,
            self._check_connection,
            subscription,
        )

    async def _teardown(self) -> None:
        subscription = self._subscription
        if subscription is None:
            return

        self._subscription = None
        await subscription.cancel()
        if subscription.channel is not None and self.client is not None:
            try:
                await _resolve(self.client.remove_channel(subscription.channel))
            except Exception:
                logger.warning(
                    "Failed to remove channel <%s>",
                    subscription.channel_name,
                    exc_info=True,
                )
        logger.info("Unsubscribed from channel <%s>", subscription.channel_name)

    def _on_status(
        self, subscription: Subscription, status: str, error: Optional[Exception] = None
    ) -> None:
        if not subscription.active or subscription is not self._subscription:
            return

        state = _STATUS_STATES.get(status)
        if state is None:
            logger.debug("Channel <%s> status: %s", subscription.channel_name, status)
            return

        if state is SubscriptionState.SUBSCRIBED:
            logger.info("Subscribed to channel <%s>", subscription.channel_name)
        elif state is SubscriptionState.ERROR:
            logger.warning(
                "Channel <%s> reported an error: %s", subscription.channel_name, error
            )
        elif state is SubscriptionState.TIMED_OUT:
            logger.warning("Channel <%s> timed out", subscription.channel_name)
        else:
            logger.info("Channel <%s> closed", subscription.channel_name)
        self._set_state(state)

    def _check_connection(self, subscription: Subscription) -> None:
        """Sample the channel state for display; never retries anything."""
        if subscription is not self._subscription or subscription.channel is None:
            return

        if subscription.channel.state == STATE_JOINED:
            self._set_state(SubscriptionState.SUBSCRIBED)
        elif self.connection.state is SubscriptionState.SUBSCRIBED:
            logger.warning("Channel <%s> is no longer joined", subscription.channel_name)
            self._set_state(SubscriptionState.ERROR)

    async def _consume(self, subscription: Subscription) -> None:
        while True:
            payload = await subscription.queue.get()
            try:
                if subscription.active:
                    self.handle_event(payload)
            except Exception:
                logger.exception("Unexpected failure applying order event")
            finally:
                subscription.queue.task_done()

    def handle_event(self, payload: Any) -> Optional[EventOutcome]:
        """Apply one raw change event to the list.

        Malformed events are logged and dropped.

        Returns:
            What the event did, or None when it was dropped
        """
        try:
            event = parse_event(payload)
            if event.errors:
                msg = f"Change event carries errors: {event.errors}"
                raise MalformedEventError(msg)
            notify(self.on_event, event)
            outcome = apply_event(self.orders, event, self.handlers)
        except MalformedEventError as e:
            logger.warning("Dropping malformed order event: %s", e)
            return None

        logger.debug("Applied %s event: %s", event.event_type.value, outcome.value)
        return outcome
