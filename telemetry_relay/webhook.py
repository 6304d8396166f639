"""Chat webhook relay.

Announces vehicle on/off and posts every tick's telemetry as
``key=value`` lines.  Unlike the route session there is no change gate:
each tick is sent.
"""

from __future__ import annotations

import structlog

from telemetry_relay.bus import EventBus
from telemetry_relay.config import WebhookConfig
from telemetry_relay.config_store import ConfigStore
from telemetry_relay.notifier import Notifier
from telemetry_relay.sampler import TelemetrySampler
from telemetry_relay.session import SessionState, TickSession
from telemetry_relay.transport import HttpTransport

logger = structlog.get_logger(__name__)


class WebhookRelay(TickSession):
    """Posts vehicle status and telemetry to a chat webhook."""

    channel = "usr.slack.status"

    def __init__(
        self,
        bus: EventBus,
        sampler: TelemetrySampler,
        transport: HttpTransport,
        store: ConfigStore,
        notifier: Notifier,
    ) -> None:
        super().__init__(bus, notifier)
        self._sampler = sampler
        self._transport = transport
        self._store = store

    def start(self) -> None:
        try:
            self.post_text("Vehicle turned on")
            self._subscribe_tick()
            self._state = SessionState.ACTIVE
        except Exception as exc:
            self._handle_error(exc, "Vehicle on")

    def end(self) -> None:
        try:
            self._unsubscribe_tick()
            self._state = SessionState.IDLE
            self.post_text("Vehicle turned off")
        except Exception as exc:
            self._handle_error(exc, "Vehicle off")

    def on_tick(self) -> None:
        self.send_telemetry()

    def send_telemetry(self) -> bool:
        """Capture a sample and post it.  Returns ``True`` if dispatched."""
        try:
            sample = self._sampler.capture()
            self.post_text("\n".join(sample.to_lines()))
            return True
        except Exception as exc:
            self._handle_error(exc, "Send telemetry")
            return False

    def onetime(self) -> bool:
        return self.send_telemetry()

    send_test_message = onetime

    def post_text(self, text: str) -> None:
        """Post *text* to the webhook.

        Raises ``ConfigMissing`` when no webhook URL is configured.
        """
        config = WebhookConfig.load(self._store)
        message = {"username": config.username, "text": text}
        logger.info("webhook_sending", url=config.url, chars=len(text))
        task = self._transport.post(config.url, json=message)
        task.add_done_callback(self._on_posted)
