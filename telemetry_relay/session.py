"""Shared lifecycle for tick-driven relay sessions."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

import structlog

from telemetry_relay.bus import EventBus, SubscriptionHandle, Topic
from telemetry_relay.notifier import Notifier
from telemetry_relay.transport import PostOutcome

logger = structlog.get_logger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


class TickSession(ABC):
    """Owns one tick subscription and reports failures on ``channel``.

    Subclasses implement ``start``/``end``/``on_tick``.  Every public
    operation catches its own errors and converts them into an error
    notification; nothing propagates to the bus.
    """

    channel: str = "usr.relay.status"

    def __init__(self, bus: EventBus, notifier: Notifier) -> None:
        self._bus = bus
        self._notifier = notifier
        self._state = SessionState.IDLE
        self._tick_subscription: Optional[SubscriptionHandle] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def tick_subscription(self) -> Optional[SubscriptionHandle]:
        return self._tick_subscription

    @abstractmethod
    def start(self) -> None:
        """Enter the active state."""

    @abstractmethod
    def end(self) -> None:
        """Return to the idle state."""

    @abstractmethod
    def on_tick(self) -> None:
        """Handle one periodic tick while active."""

    @abstractmethod
    def onetime(self) -> bool:
        """Send one sample immediately.  Returns ``True`` if dispatched."""

    def send(self, start: Any) -> None:
        """``start()`` when *start* is truthy, else ``end()``."""
        if start:
            self.start()
        else:
            self.end()

    # -- internal -----------------------------------------------------------

    def _subscribe_tick(self) -> None:
        if self._tick_subscription is None:
            self._tick_subscription = self._bus.subscribe(
                Topic.TICKER, self._handle_tick
            )
            logger.info("ticker_subscribed", channel=self.channel)

    def _unsubscribe_tick(self) -> None:
        if self._tick_subscription is not None:
            self._bus.unsubscribe(self._tick_subscription)
            self._tick_subscription = None
            logger.info("ticker_unsubscribed", channel=self.channel)

    def _handle_tick(self, topic: str, payload: Any) -> None:
        self.on_tick()

    def _handle_error(self, error: BaseException, context: str) -> None:
        logger.error(
            "relay_operation_failed",
            channel=self.channel,
            context=context,
            error=str(error),
            exc_info=error,
        )
        self._notifier.error(self.channel, f"{context} error - {error}")

    def _on_posted(self, task: "asyncio.Task[PostOutcome]") -> None:
        """Continuation for a dispatched POST; runs on the event loop."""
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._handle_error(exc, "HTTP request")
            return
        outcome = task.result()
        if outcome.error is not None:
            self._handle_error(outcome.error, "HTTP request")
        else:
            logger.info("post_acknowledged", channel=self.channel, status=outcome.status_code)
