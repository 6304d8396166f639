"""In-process publish/subscribe bus and the host event sources.

Dispatch is single-threaded: ``publish`` runs every handler to
completion, in subscription order, before returning.  Handlers must
only be invoked from the event-loop thread.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import structlog

from telemetry_relay.metrics import base as metrics
from telemetry_relay.metrics.base import MetricsSource

logger = structlog.get_logger(__name__)

Handler = Callable[[str, Any], None]


class Topic:
    VEHICLE_ON = "vehicle.on"
    VEHICLE_OFF = "vehicle.off"
    TICKER = "ticker.60"


@dataclass(frozen=True)
class SubscriptionHandle:
    """Opaque token for one active subscription."""

    topic: str
    token: int


class EventBus:
    """Named-topic pub/sub."""

    def __init__(self) -> None:
        self._tokens = itertools.count(1)
        self._subscriptions: Dict[str, Dict[int, Handler]] = {}

    def subscribe(self, topic: str, handler: Handler) -> SubscriptionHandle:
        handle = SubscriptionHandle(topic=topic, token=next(self._tokens))
        self._subscriptions.setdefault(topic, {})[handle.token] = handler
        logger.debug("bus_subscribed", topic=topic, token=handle.token)
        return handle

    def unsubscribe(self, handle: SubscriptionHandle) -> bool:
        """Remove *handle*.  Returns ``False`` if it was not active."""
        handlers = self._subscriptions.get(handle.topic)
        if not handlers or handle.token not in handlers:
            return False
        del handlers[handle.token]
        if not handlers:
            del self._subscriptions[handle.topic]
        logger.debug("bus_unsubscribed", topic=handle.topic, token=handle.token)
        return True

    def publish(self, topic: str, payload: Any = None) -> int:
        """Deliver *payload* to every handler of *topic*.

        Handlers subscribed or removed during dispatch take effect on the
        next publish.  A raising handler is logged and the rest still run.
        Returns the number of handlers invoked.
        """
        handlers = list(self._subscriptions.get(topic, {}).values())
        for handler in handlers:
            try:
                handler(topic, payload)
            except Exception:
                logger.exception("bus_handler_failed", topic=topic)
        return len(handlers)

    def subscriber_count(self, topic: Optional[str] = None) -> int:
        if topic is not None:
            return len(self._subscriptions.get(topic, {}))
        return sum(len(h) for h in self._subscriptions.values())


class Ticker:
    """Publishes a tick topic at a fixed interval."""

    def __init__(
        self,
        bus: EventBus,
        *,
        interval: float = 60.0,
        topic: str = Topic.TICKER,
    ) -> None:
        self._bus = bus
        self._interval = interval
        self._topic = topic

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """Tick until *shutdown_event* is set."""
        while not await interruptible_sleep(self._interval, shutdown_event):
            self._bus.publish(self._topic)


class IgnitionWatcher:
    """Publishes vehicle on/off events on ignition metric transitions.

    The first observed "on" counts as a transition; an initial "off" does
    not.
    """

    def __init__(
        self,
        bus: EventBus,
        source: MetricsSource,
        *,
        interval: float = 5.0,
    ) -> None:
        self._bus = bus
        self._source = source
        self._interval = interval
        self._vehicle_on = False

    @property
    def vehicle_on(self) -> bool:
        return self._vehicle_on

    def poll(self) -> None:
        """Read the ignition metric once and publish on change."""
        try:
            is_on = bool(self._source.read(metrics.VEHICLE_ON))
        except Exception:
            logger.exception("ignition_read_failed")
            return
        if is_on == self._vehicle_on:
            return
        self._vehicle_on = is_on
        topic = Topic.VEHICLE_ON if is_on else Topic.VEHICLE_OFF
        logger.info("ignition_changed", vehicle_on=is_on)
        self._bus.publish(topic)

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """Poll until *shutdown_event* is set."""
        self.poll()
        while not await interruptible_sleep(self._interval, shutdown_event):
            self.poll()


async def interruptible_sleep(seconds: float, event: asyncio.Event) -> bool:
    """Sleep for *seconds* but wake early if *event* is set.

    Returns ``True`` if woken by *event*.
    """
    try:
        await asyncio.wait_for(event.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return False
    return True
