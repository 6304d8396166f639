"""Binds a session's start/end to vehicle on/off events."""

from __future__ import annotations

from typing import Any, Optional

import structlog

from telemetry_relay.bus import EventBus, SubscriptionHandle, Topic
from telemetry_relay.notifier import Notifier
from telemetry_relay.session import TickSession

logger = structlog.get_logger(__name__)


class AutoTrigger:
    """Starts *session* on vehicle-on and ends it on vehicle-off.

    ``enable()`` and ``disable()`` are idempotent: at most one handle per
    topic is ever live.
    """

    def __init__(self, bus: EventBus, session: TickSession, notifier: Notifier) -> None:
        self._bus = bus
        self._session = session
        self._notifier = notifier
        self._vehicle_on: Optional[SubscriptionHandle] = None
        self._vehicle_off: Optional[SubscriptionHandle] = None

    def enable(self) -> None:
        if self._vehicle_on is None:
            self._vehicle_on = self._bus.subscribe(Topic.VEHICLE_ON, self._on_vehicle_on)
            logger.info("vehicle_on_subscribed", channel=self._session.channel)
        if self._vehicle_off is None:
            self._vehicle_off = self._bus.subscribe(Topic.VEHICLE_OFF, self._on_vehicle_off)
            logger.info("vehicle_off_subscribed", channel=self._session.channel)

    def disable(self) -> None:
        if self._vehicle_on is not None:
            self._bus.unsubscribe(self._vehicle_on)
            self._vehicle_on = None
        if self._vehicle_off is not None:
            self._bus.unsubscribe(self._vehicle_off)
            self._vehicle_off = None
        logger.info("vehicle_on_off_unsubscribed", channel=self._session.channel)

    def set(self, enable: Any) -> None:
        """``enable()`` when *enable* is truthy, else ``disable()``."""
        if enable:
            self.enable()
        else:
            self.disable()

    def _on_vehicle_on(self, topic: str, payload: Any) -> None:
        self._notifier.info(self._session.channel, "Vehicle on - starting route")
        self._session.start()

    def _on_vehicle_off(self, topic: str, payload: Any) -> None:
        self._notifier.info(self._session.channel, "Vehicle off - ending route")
        self._session.end()
