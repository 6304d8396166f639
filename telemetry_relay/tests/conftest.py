"""Shared pytest fixtures for telemetry relay tests."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Generator, List, Optional

import pytest

from telemetry_relay.bus import EventBus
from telemetry_relay.config_store import MemoryConfigStore
from telemetry_relay.exceptions import MetricsUnavailable, TransportFailure
from telemetry_relay.metrics.base import MetricsSource, MetricValue
from telemetry_relay.notifier import Notifier
from telemetry_relay.sampler import TelemetrySampler
from telemetry_relay.schemas import TelemetrySample
from telemetry_relay.transport import PostOutcome

FIXED_UTC = 1_600_000_000.7

BASE_METRICS: Dict[str, MetricValue] = {
    "v.e.on": True,
    "v.b.soc": 72.9,
    "v.b.soh": 96.0,
    "v.p.speed": 54.0,
    "v.p.latitude": 37.77123,
    "v.p.longitude": -122.41942,
    "v.p.altitude": 16.04,
    "v.e.temp": 18.5,
    "v.c.state": "idle",
    "v.b.temp": 24.0,
    "v.b.voltage": 388.2,
    "v.b.current": 21.5,
    "v.b.power": 8.34,
}


class FakeMetrics(MetricsSource):
    """Minimal in-memory metrics source for testing."""

    def __init__(self, values: Optional[Dict[str, MetricValue]] = None) -> None:
        self.values: Dict[str, MetricValue] = dict(BASE_METRICS)
        self.values.update(values or {})

    def read(self, name: str) -> MetricValue:
        if name not in self.values:
            raise MetricsUnavailable(name)
        return self.values[name]


class FakeTransport:
    """Records posts; each resolves to ``outcome`` on the next loop turn."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.outcome: Optional[PostOutcome] = None
        self.raise_on_post: Optional[Exception] = None
        self.task_error: Optional[Exception] = None

    def post(self, url: str, **kwargs: Any) -> "asyncio.Task[PostOutcome]":
        if self.raise_on_post is not None:
            raise self.raise_on_post
        self.calls.append({"url": url, **kwargs})
        if self.task_error is not None:
            return asyncio.get_running_loop().create_task(_fail(self.task_error))
        outcome = self.outcome or PostOutcome(url=url, status_code=200)
        return asyncio.get_running_loop().create_task(_resolve(outcome))

    def fail_with_status(self, status: int) -> None:
        self.outcome = PostOutcome(
            url="",
            status_code=status,
            error=TransportFailure(
                f"Unexpected status code [{status}]", status_code=status
            ),
        )


async def _resolve(outcome: PostOutcome) -> PostOutcome:
    return outcome


async def _fail(error: Exception) -> PostOutcome:
    raise error


async def settle() -> None:
    """Let pending post tasks and their continuations run."""
    for _ in range(3):
        await asyncio.sleep(0)


def make_sample(**overrides: Any) -> TelemetrySample:
    fields: Dict[str, Any] = dict(
        timestamp=1_600_000_000,
        state_of_charge=72,
        state_of_health=96.0,
        speed=54.0,
        vehicle_model="tesla:m3:20:bt37:heatpump",
        latitude="37.771",
        longitude="-122.419",
        altitude="16.0",
        external_temp=18.5,
        is_charging=0,
        battery_temp=24.0,
        voltage=388.2,
        current=21.5,
        power="8.3",
    )
    fields.update(overrides)
    return TelemetrySample(**fields)


@pytest.fixture(autouse=True)
def _reset_scenario_cache() -> Generator[None, None, None]:
    """Clear the simulation scenario cache between tests."""
    from telemetry_relay.metrics import simulation

    simulation._scenarios_cache = None
    yield
    simulation._scenarios_cache = None


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def metrics() -> FakeMetrics:
    return FakeMetrics()


@pytest.fixture()
def sampler(metrics: FakeMetrics) -> TelemetrySampler:
    return TelemetrySampler(metrics, clock=lambda: FIXED_UTC)


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture()
def store() -> MemoryConfigStore:
    return MemoryConfigStore(
        {
            "usr": {
                "abrp.url": "http://planner.test/1/tlm/send",
                "abrp.user_token": "user-token-1",
                "abrp.car_model": "tesla:m3:20:bt37:heatpump",
                "slack.url": "http://hooks.test/services/x",
            },
            "vehicle": {"id": "MYCAR"},
        }
    )
