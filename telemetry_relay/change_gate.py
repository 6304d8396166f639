"""Change gate: decides whether a new sample is worth forwarding.

The gate is a pure predicate.  The caller commits the new sample as
"previous" only when it was accepted.
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple

import structlog

from telemetry_relay.schemas import TelemetrySample

logger = structlog.get_logger(__name__)

WATCHED_FIELDS: Tuple[str, ...] = (
    "state_of_charge",
    "state_of_health",
    "latitude",
    "longitude",
    "altitude",
    "is_charging",
    "battery_temp",
    "external_temp",
)


class ChangeGate:
    """Filters redundant and invalid telemetry samples.

    Comparison is exact: positional fields are already fixed-decimal
    strings, so no epsilon is needed.
    """

    def __init__(self, watched_fields: Iterable[str] = WATCHED_FIELDS) -> None:
        self._watched = tuple(watched_fields)
        unknown = set(self._watched) - set(TelemetrySample.model_fields)
        if unknown:
            raise ValueError(f"Unknown sample fields: {', '.join(sorted(unknown))}")

    def should_send(
        self,
        previous: Optional[TelemetrySample],
        next_sample: TelemetrySample,
        force: bool = False,
    ) -> bool:
        """Return ``True`` when *next_sample* should be forwarded.

        A missing *previous* or *force* accepts unconditionally, before
        the validity guard is consulted.
        """
        if previous is None or force:
            return True

        if next_sample.state_of_health + next_sample.state_of_charge == 0:
            # Zero SOC and SOH together means the CAN bus was unreadable.
            logger.warning(
                "telemetry_invalid",
                hint="canbus not readable: reset module and then put motors on",
            )
            return False

        changed = self.changed_field(previous, next_sample)
        if changed is None:
            logger.info("telemetry_unchanged")
            return False
        logger.info(
            "telemetry_changed",
            field=changed,
            previous=getattr(previous, changed),
            next=getattr(next_sample, changed),
        )
        return True

    def changed_field(
        self, previous: TelemetrySample, next_sample: TelemetrySample
    ) -> Optional[str]:
        """Return the first watched field that differs, or ``None``."""
        for name in self._watched:
            if getattr(previous, name) != getattr(next_sample, name):
                return name
        return None
