"""Error taxonomy for telemetry_relay.

None of these terminate a route session: they are caught at the
operation boundary, logged and surfaced as error notifications.
"""

from __future__ import annotations

from typing import Iterable, Optional


class RelayError(Exception):
    """Base exception for all telemetry_relay errors."""


class MetricsUnavailable(RelayError):
    """A named vehicle metric could not be read."""

    def __init__(self, metric: str, reason: str = "") -> None:
        self.metric = metric
        message = f"Metric [{metric}] unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ConfigMissing(RelayError):
    """Required configuration values are absent."""

    def __init__(self, keys: Iterable[str]) -> None:
        self.keys = tuple(keys)
        super().__init__(f"Missing config values: {', '.join(self.keys)}")


class TransportFailure(RelayError):
    """HTTP call failed or returned a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class SerializationFailure(RelayError):
    """Payload could not be encoded."""
