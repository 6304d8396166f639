"""Fixture-based simulation metrics (no vehicle required).

Loads scenarios from ``fixtures/vehicle_scenarios.json`` and applies
Gaussian noise to numeric metrics so consecutive samples vary
realistically.
"""

from __future__ import annotations

import json
import random
from pathlib import Path
from typing import Any, Dict, Optional

from telemetry_relay.exceptions import MetricsUnavailable
from telemetry_relay.metrics.base import MetricsSource, MetricValue

_FIXTURES_DIR = Path(__file__).resolve().parent.parent / "fixtures"


class SimulationMetricsSource(MetricsSource):
    """Reads synthetic vehicle metrics from a JSON fixture scenario.

    A scenario maps metric names either to a literal value or to
    ``{"base": <number>, "noise": <std-dev>}``.
    """

    def __init__(self, scenario: str = "driving") -> None:
        scenarios = _load_scenarios()
        if scenario not in scenarios:
            available = ", ".join(sorted(scenarios))
            raise ValueError(
                f"Unknown simulation scenario '{scenario}'. "
                f"Available: {available}"
            )
        self._scenario_name = scenario
        self._metrics: Dict[str, Any] = dict(scenarios[scenario])

    @property
    def scenario(self) -> str:
        return self._scenario_name

    def read(self, name: str) -> MetricValue:
        if name not in self._metrics:
            raise MetricsUnavailable(name, "not defined in scenario")
        definition = self._metrics[name]
        if isinstance(definition, dict):
            return _apply_noise(definition["base"], definition.get("noise", 0.0))
        return definition

    def set(self, name: str, value: MetricValue) -> None:
        """Override metric *name* with a literal value."""
        self._metrics[name] = value


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_scenarios_cache: Optional[Dict[str, Any]] = None


def _load_scenarios() -> Dict[str, Any]:
    global _scenarios_cache
    if _scenarios_cache is None:
        path = _FIXTURES_DIR / "vehicle_scenarios.json"
        with open(path, encoding="utf-8") as fh:
            _scenarios_cache = json.load(fh)
    return _scenarios_cache


def _apply_noise(base: float, noise: float) -> float:
    """Apply Gaussian noise (std-dev = noise) to a base value."""
    if noise <= 0:
        return base
    return base + random.gauss(0, noise)
