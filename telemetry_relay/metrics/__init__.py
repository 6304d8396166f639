"""Vehicle metrics abstraction layer.

Provides ``MetricsSource`` ABC with one concrete implementation:

* ``SimulationMetricsSource`` -- fixture-based, no vehicle required.
"""

from telemetry_relay.metrics.base import MetricsSource

__all__ = ["MetricsSource"]
