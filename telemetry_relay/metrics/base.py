"""Abstract base class for vehicle metric sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Union

from telemetry_relay.exceptions import MetricsUnavailable

# Host metric names.
STATE_OF_CHARGE = "v.b.soc"
STATE_OF_HEALTH = "v.b.soh"
SPEED = "v.p.speed"
LATITUDE = "v.p.latitude"
LONGITUDE = "v.p.longitude"
ALTITUDE = "v.p.altitude"
EXTERNAL_TEMP = "v.e.temp"
CHARGE_STATE = "v.c.state"
BATTERY_TEMP = "v.b.temp"
BATTERY_VOLTAGE = "v.b.voltage"
BATTERY_CURRENT = "v.b.current"
BATTERY_POWER = "v.b.power"
VEHICLE_ON = "v.e.on"

MetricValue = Union[float, int, str, bool]


class MetricsSource(ABC):
    """Scalar reads of named vehicle metrics."""

    @abstractmethod
    def read(self, name: str) -> MetricValue:
        """Return the current value of metric *name*.

        Raises ``MetricsUnavailable`` if the metric cannot be read.
        """

    def read_float(self, name: str) -> float:
        """Read *name* and coerce it to ``float``."""
        value: Any = self.read(name)
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise MetricsUnavailable(name, f"not numeric: {value!r}") from exc
