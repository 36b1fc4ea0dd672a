"""Push subscription provider contract and an in-process implementation.

Production code talks to a managed realtime service whose client follows
the :class:`RealtimeClient` / :class:`RealtimeChannel` protocols. Methods may
return plain values or awaitables; callers await whatever comes back.
"""

from collections.abc import Callable
from collections.abc import Mapping
from logging import getLogger
from typing import Any
from typing import Optional
from typing import Protocol

logger = getLogger(__name__)

# Status strings passed to subscribe callbacks
SUBSCRIBED = "SUBSCRIBED"
CHANNEL_ERROR = "CHANNEL_ERROR"
TIMED_OUT = "TIMED_OUT"
CLOSED = "CLOSED"

# Values of RealtimeChannel.state
STATE_CLOSED = "closed"
STATE_ERRORED = "errored"
STATE_JOINED = "joined"
STATE_JOINING = "joining"
STATE_LEAVING = "leaving"

EventCallback = Callable[[dict[str, Any]], Any]
StatusCallback = Callable[..., Any]


class RealtimeChannel(Protocol):
    topic: str

    @property
    def state(self) -> str: ...

    def on(self, event_type: str, spec: Mapping[str, Any], callback: EventCallback) -> Any: ...

    def subscribe(self, callback: Optional[StatusCallback] = None) -> Any: ...


class RealtimeClient(Protocol):
    def channel(
        self, name: str, params: Optional[Mapping[str, Any]] = None
    ) -> RealtimeChannel: ...

    def remove_channel(self, channel: RealtimeChannel) -> Any: ...

    def get_channels(self) -> list[RealtimeChannel]: ...


def _filter_matches(filter_expr: Optional[str], payload: Mapping[str, Any]) -> bool:
    """Evaluate a ``column=eq.value`` / ``column=in.(a,b)`` filter.

    Records without the filtered column pass: delete events usually carry
    only the primary key.
    """
    if not filter_expr:
        return True

    column, _, condition = filter_expr.partition("=")
    operator, _, operand = condition.partition(".")
    record = payload.get("new") or payload.get("old") or {}
    value = record.get(column)
    if value is None:
        return True

    if operator == "eq":
        return str(value) == operand
    if operator == "in":
        return str(value) in operand.strip("()").split(",")
    logger.warning("Unsupported filter operator <%s>", operator)
    return False


class LocalChannel:
    """In-process channel driven by :class:`LocalRealtimeClient`."""

    def __init__(
        self,
        topic: str,
        client: "LocalRealtimeClient",
        params: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.topic = topic
        self.client = client
        self.params = dict(params or {})
        self._state = STATE_CLOSED
        self._bindings: list[tuple[str, dict[str, Any], EventCallback]] = []
        self._status_callback: Optional[StatusCallback] = None

    @property
    def state(self) -> str:
        return self._state

    def on(
        self, event_type: str, spec: Mapping[str, Any], callback: EventCallback
    ) -> "LocalChannel":
        self._bindings.append((event_type, dict(spec), callback))
        return self

    def subscribe(self, callback: Optional[StatusCallback] = None) -> "LocalChannel":
        self._status_callback = callback
        self._state = STATE_JOINING
        if self.client.auto_acknowledge:
            self.acknowledge()
        return self

    def _report(self, status: str, error: Optional[Exception] = None) -> None:
        if self._status_callback is not None:
            self._status_callback(status, error)

    def acknowledge(self) -> None:
        self._state = STATE_JOINED
        self._report(SUBSCRIBED)

    def fail(self, error: Optional[Exception] = None) -> None:
        self._state = STATE_ERRORED
        self._report(CHANNEL_ERROR, error)

    def time_out(self) -> None:
        self._state = STATE_ERRORED
        self._report(TIMED_OUT)

    def close(self) -> None:
        if self._state == STATE_CLOSED:
            return
        self._state = STATE_CLOSED
        self._report(CLOSED)

    def deliver(self, payload: Mapping[str, Any]) -> int:
        """Hand ``payload`` to every matching binding if the channel is joined."""
        if self._state != STATE_JOINED:
            return 0

        delivered = 0
        for _event_type, spec, callback in self._bindings:
            event = spec.get("event", "*")
            if event != "*" and event != payload.get("eventType"):
                continue
            if not _filter_matches(spec.get("filter"), payload):
                continue
            callback(dict(payload))
            delivered += 1
        return delivered


class LocalRealtimeClient:
    """In-process push provider.

    Channels acknowledge their subscription immediately unless
    ``auto_acknowledge`` is False, in which case tests drive the handshake
    with ``acknowledge()``, ``fail()`` or ``time_out()`` on the channel.
    """

    def __init__(self, auto_acknowledge: bool = True) -> None:
        self.auto_acknowledge = auto_acknowledge
        self._channels: list[LocalChannel] = []

    def channel(
        self, name: str, params: Optional[Mapping[str, Any]] = None
    ) -> LocalChannel:
        channel = LocalChannel(name, self, params)
        self._channels.append(channel)
        return channel

    def remove_channel(self, channel: LocalChannel) -> None:
        channel.close()
        if channel in self._channels:
            self._channels.remove(channel)

    def get_channels(self) -> list[LocalChannel]:
        return list(self._channels)

    def publish(self, payload: Mapping[str, Any]) -> int:
        """Broadcast a change event to every channel; return how many bindings got it."""
        return sum(channel.deliver(payload) for channel in list(self._channels))
