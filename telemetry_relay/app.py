"""Relay wiring and the main asyncio loop."""

from __future__ import annotations

import asyncio
import signal
import sys
from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from telemetry_relay.auto_trigger import AutoTrigger
from telemetry_relay.bus import EventBus, IgnitionWatcher, Ticker
from telemetry_relay.config import RelaySettings
from telemetry_relay.config_store import ConfigStore, YamlConfigStore
from telemetry_relay.metrics.base import MetricsSource
from telemetry_relay.notifier import Notifier
from telemetry_relay.route_session import RouteSession
from telemetry_relay.sampler import TelemetrySampler
from telemetry_relay.session import SessionState, TickSession
from telemetry_relay.transport import HttpTransport
from telemetry_relay.webhook import WebhookRelay

logger = structlog.get_logger(__name__)


@dataclass
class Relay:
    """All components of one relay process."""

    bus: EventBus
    metrics: MetricsSource
    store: ConfigStore
    transport: HttpTransport
    notifier: Notifier
    sessions: List[TickSession] = field(default_factory=list)
    triggers: List[AutoTrigger] = field(default_factory=list)

    @property
    def route_session(self) -> Optional[RouteSession]:
        for session in self.sessions:
            if isinstance(session, RouteSession):
                return session
        return None


def create_metrics_source(settings: RelaySettings) -> MetricsSource:
    from telemetry_relay.metrics.simulation import SimulationMetricsSource

    return SimulationMetricsSource(scenario=settings.metrics_scenario)


def build_relay(
    settings: RelaySettings,
    *,
    metrics: Optional[MetricsSource] = None,
    store: Optional[ConfigStore] = None,
) -> Relay:
    """Factory: wire every enabled session for the current config."""
    relay = Relay(
        bus=EventBus(),
        metrics=metrics or create_metrics_source(settings),
        store=store if store is not None else YamlConfigStore(settings.config_path),
        transport=HttpTransport(settings),
        notifier=Notifier(),
    )
    sampler = TelemetrySampler(relay.metrics)

    if settings.enable_route_planner:
        relay.sessions.append(
            RouteSession(
                relay.bus,
                sampler,
                relay.transport,
                relay.store,
                relay.notifier,
                api_key=settings.route_api_key,
            )
        )
    if settings.enable_webhook:
        relay.sessions.append(
            WebhookRelay(relay.bus, sampler, relay.transport, relay.store, relay.notifier)
        )
    relay.triggers = [
        AutoTrigger(relay.bus, session, relay.notifier) for session in relay.sessions
    ]
    return relay


async def run_relay(
    settings: RelaySettings,
    *,
    once: bool = False,
    relay: Optional[Relay] = None,
    shutdown_event: Optional[asyncio.Event] = None,
) -> None:
    """Run the relay until shutdown.

    Parameters
    ----------
    settings:
        Fully-resolved relay configuration.
    once:
        If ``True``, force one send per session, wait for the responses,
        then exit.
    relay:
        Pre-built components; built from *settings* when omitted.
    shutdown_event:
        Stops the loop when set; SIGINT/SIGTERM set it too.
    """
    shutdown_event = shutdown_event or asyncio.Event()
    relay = relay or build_relay(settings)

    def _request_shutdown() -> None:
        logger.info("shutdown_requested")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _request_shutdown)

    if not relay.sessions:
        logger.warning("no_sessions_enabled")

    await relay.transport.start()
    try:
        if once:
            for session in relay.sessions:
                session.onetime()
            return
        await _loop(relay, settings, shutdown_event)
    finally:
        _shutdown(relay)
        await relay.transport.close()


async def _loop(
    relay: Relay,
    settings: RelaySettings,
    shutdown_event: asyncio.Event,
) -> None:
    ticker = Ticker(relay.bus, interval=settings.tick_interval_seconds)
    workers = [ticker.run(shutdown_event)]

    if settings.auto_start:
        for trigger in relay.triggers:
            trigger.enable()
        watcher = IgnitionWatcher(
            relay.bus, relay.metrics, interval=settings.ignition_poll_seconds
        )
        workers.append(watcher.run(shutdown_event))
    else:
        for session in relay.sessions:
            session.start()

    logger.info(
        "relay_running",
        sessions=[s.channel for s in relay.sessions],
        auto_start=settings.auto_start,
    )
    await asyncio.gather(*workers)


def _shutdown(relay: Relay) -> None:
    for trigger in relay.triggers:
        trigger.disable()
    for session in relay.sessions:
        if session.state is SessionState.ACTIVE:
            session.end()
