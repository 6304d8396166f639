"""Route session: periodic telemetry forwarding to the route planner.

Idle -> Active on ``start()``; Active -> Idle on ``end()``.  Both are
idempotent.  While active, every tick captures a sample, runs it
through the ``ChangeGate`` and forwards accepted samples.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog

from telemetry_relay.bus import EventBus
from telemetry_relay.change_gate import ChangeGate
from telemetry_relay.config import ROUTE_PREFIX, USER_NAMESPACE, RouteConfig
from telemetry_relay.config_store import ConfigStore
from telemetry_relay.notifier import Notifier
from telemetry_relay.sampler import TelemetrySampler
from telemetry_relay.schemas import TelemetrySample
from telemetry_relay.session import SessionState, TickSession
from telemetry_relay.transport import HttpTransport

logger = structlog.get_logger(__name__)


class RouteSession(TickSession):
    """Forwards changed telemetry to the route-planner telemetry API."""

    channel = "usr.abrp.status"

    def __init__(
        self,
        bus: EventBus,
        sampler: TelemetrySampler,
        transport: HttpTransport,
        store: ConfigStore,
        notifier: Notifier,
        *,
        api_key: str,
        gate: Optional[ChangeGate] = None,
    ) -> None:
        super().__init__(bus, notifier)
        self._sampler = sampler
        self._transport = transport
        self._store = store
        self._api_key = api_key
        self._gate = gate or ChangeGate()
        self._current_sample: Optional[TelemetrySample] = None
        self._config: Optional[RouteConfig] = None

    @property
    def current_sample(self) -> Optional[TelemetrySample]:
        return self._current_sample

    @property
    def config(self) -> Optional[RouteConfig]:
        """Memoized config for this session, ``None`` until first use."""
        return self._config

    # -- lifecycle ----------------------------------------------------------

    def start(self) -> None:
        try:
            self._unload_config()
            self._current_sample = None
            self.send_telemetry(force=True)
            self._subscribe_tick()
            self._state = SessionState.ACTIVE
            logger.info("route_started")
            self._notifier.info(self.channel, "Route started")
        except Exception as exc:
            self._handle_error(exc, "Start route")

    def end(self) -> None:
        try:
            self._unload_config()
            self._current_sample = None
            self._unsubscribe_tick()
            self._state = SessionState.IDLE
            logger.info("route_ended")
            self._notifier.info(self.channel, "Route ended")
        except Exception as exc:
            self._handle_error(exc, "End route")

    def on_tick(self) -> None:
        self.send_telemetry(force=False)

    # -- operations ---------------------------------------------------------

    def send_telemetry(self, force: bool = False) -> bool:
        """Capture, gate and forward one sample.

        Returns ``True`` if a request was dispatched.  The sample becomes
        the session's current sample only once dispatched.
        """
        try:
            config = self._load_config()
            sample = self._sampler.capture(config.car_model)
            if not self._gate.should_send(self._current_sample, sample, force):
                return False
            self._forward(sample, config)
            self._current_sample = sample
            return True
        except Exception as exc:
            self._handle_error(exc, "Send telemetry")
            return False

    def onetime(self) -> bool:
        """Force one send, even if unchanged."""
        return self.send_telemetry(force=True)

    def show_telemetry(self) -> Dict[str, Any]:
        """Return the wire form of a fresh sample without sending it."""
        self._unload_config()
        return self._sampler.capture(self._load_config().car_model).to_wire()

    def reset_config(self) -> None:
        """Delete stored route-planner settings so defaults apply."""
        for key in ("url", "user_token", "car_model"):
            self._store.delete(USER_NAMESPACE, ROUTE_PREFIX + key)
        self._unload_config()
        self._notifier.info(self.channel, "Config reset to defaults")

    # -- internal -----------------------------------------------------------

    def _load_config(self) -> RouteConfig:
        if self._config is None:
            self._config = RouteConfig.load(self._store)
            logger.info(
                "route_config_loaded",
                url=self._config.url,
                car_model=self._config.car_model,
            )
        return self._config

    def _unload_config(self) -> None:
        self._config = None

    def _forward(self, sample: TelemetrySample, config: RouteConfig) -> None:
        params = {
            "api_key": self._api_key,
            "token": config.user_token,
            "tlm": sample.to_json(),
        }
        task = self._transport.post(config.url, params=params)
        task.add_done_callback(self._on_posted)
        logger.info(
            "telemetry_sent",
            url=config.url,
            utc=sample.timestamp,
            soc=sample.state_of_charge,
        )
