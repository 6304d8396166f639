"""Assembles a ``TelemetrySample`` from a metrics source."""

from __future__ import annotations

import math
import time
from typing import Callable

import structlog

from telemetry_relay.exceptions import MetricsUnavailable
from telemetry_relay.metrics import base as metrics
from telemetry_relay.metrics.base import MetricsSource
from telemetry_relay.schemas import TelemetrySample

logger = structlog.get_logger(__name__)

CHARGING_STATES = frozenset({"charging", "topoff"})


class TelemetrySampler:
    """Reads the metric set and normalizes it into a sample."""

    def __init__(
        self,
        source: MetricsSource,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._source = source
        self._clock = clock

    def capture(self, vehicle_model: str = "") -> TelemetrySample:
        """Read all metrics and return a new sample.

        Raises ``MetricsUnavailable`` if any read fails.
        """
        read = self._source.read_float
        charge_state = self._source.read(metrics.CHARGE_STATE)

        try:
            soc = math.floor(read(metrics.STATE_OF_CHARGE))
        except (OverflowError, ValueError) as exc:
            raise MetricsUnavailable(metrics.STATE_OF_CHARGE, str(exc)) from exc

        sample = TelemetrySample(
            timestamp=math.trunc(self._clock()),
            state_of_charge=soc,
            state_of_health=read(metrics.STATE_OF_HEALTH),
            speed=read(metrics.SPEED),
            vehicle_model=vehicle_model,
            latitude=_fixed(read(metrics.LATITUDE), 3),
            longitude=_fixed(read(metrics.LONGITUDE), 3),
            altitude=_fixed(read(metrics.ALTITUDE), 1),
            external_temp=read(metrics.EXTERNAL_TEMP),
            is_charging=1 if charge_state in CHARGING_STATES else 0,
            battery_temp=read(metrics.BATTERY_TEMP),
            voltage=read(metrics.BATTERY_VOLTAGE),
            current=read(metrics.BATTERY_CURRENT),
            power=_fixed(read(metrics.BATTERY_POWER), 1),
        )
        logger.debug("telemetry_captured", utc=sample.timestamp, soc=sample.state_of_charge)
        return sample


def _fixed(value: float, places: int) -> str:
    return f"{value:.{places}f}"
