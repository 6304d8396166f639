"""Telemetry Relay -- forwards vehicle telemetry to external endpoints.

Watches vehicle lifecycle events (ignition on/off, a 60 s tick) and
relays sampled telemetry to a route-planning telemetry API and to a
chat webhook.
"""

__version__ = "0.1.0"
