"""Relay configuration.

Two layers:

* ``RelaySettings`` -- process settings via pydantic-settings, so every
  field can be overridden with an env var (empty ``env_prefix``, e.g.
  ``LOG_LEVEL``, ``DRY_RUN``).
* ``RouteConfig`` / ``WebhookConfig`` -- user settings read from the
  host ``ConfigStore`` once per session.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Mapping, Tuple

import structlog
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from telemetry_relay.exceptions import ConfigMissing

if TYPE_CHECKING:
    from telemetry_relay.config_store import ConfigStore

logger = structlog.get_logger(__name__)

USER_NAMESPACE = "usr"
VEHICLE_NAMESPACE = "vehicle"
ROUTE_PREFIX = "abrp."
WEBHOOK_URL_KEY = "slack.url"
VEHICLE_ID_KEY = "id"


class RelaySettings(BaseSettings):
    """Telemetry relay runtime settings."""

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

    # -- host shims ---------------------------------------------------------
    config_path: str = Field(
        default="relay_config.yaml",
        description="YAML file backing the user config store",
    )
    metrics_scenario: str = Field(
        default="driving",
        description="Simulation scenario name (from vehicle_scenarios.json)",
    )
    tick_interval_seconds: float = Field(
        default=60.0,
        description="Seconds between ticker events",
    )
    ignition_poll_seconds: float = Field(
        default=5.0,
        description="Seconds between ignition metric polls",
    )

    # -- sinks --------------------------------------------------------------
    route_api_key: str = Field(
        default="32b2162f-9599-4647-8139-66e9f9528370",
        description="Developer API key sent to the route planner",
    )
    enable_route_planner: bool = Field(default=True)
    enable_webhook: bool = Field(default=False)
    auto_start: bool = Field(
        default=True,
        description="Start/end routes on vehicle on/off instead of immediately",
    )
    http_timeout_seconds: float = Field(default=30.0)

    # -- behaviour ----------------------------------------------------------
    dry_run: bool = Field(
        default=False,
        description="Log outbound requests; never send them",
    )
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="console",
        description="Log output format: 'console' or 'json'",
    )


_ROUTE_DEFAULTS = {
    "url": "http://api.iternio.com/1/tlm/send",
    "car_model": "@@:@@:@@:@@:@@",
    "user_token": "@@@@@@@@-@@@@-@@@@-@@@@-@@@@@@@@@@@@",
}


class RouteConfig(BaseModel):
    """Route-planner endpoint parameters, one snapshot per route session."""

    model_config = {"frozen": True}

    url: str = _ROUTE_DEFAULTS["url"]
    user_token: str = _ROUTE_DEFAULTS["user_token"]
    car_model: str = _ROUTE_DEFAULTS["car_model"]
    missing: Tuple[str, ...] = ()

    @classmethod
    def from_values(cls, values: Mapping[str, str]) -> "RouteConfig":
        """Build from prefix-stripped store values, defaulting absent keys.

        Absent keys are a ``ConfigMissing`` condition: logged, then sent
        with the placeholder value.
        """
        fields = {}
        missing = []
        for key, default in _ROUTE_DEFAULTS.items():
            value = values.get(key)
            if value:
                fields[key] = value
            else:
                fields[key] = default
                missing.append(key)
        config = cls(**fields, missing=tuple(missing))
        if missing:
            logger.warning(
                "route_config_incomplete",
                error=str(ConfigMissing(ROUTE_PREFIX + k for k in missing)),
            )
        return config

    @classmethod
    def load(cls, store: "ConfigStore") -> "RouteConfig":
        values = store.get_values(USER_NAMESPACE, ROUTE_PREFIX)
        return cls.from_values(
            {key[len(ROUTE_PREFIX):]: value for key, value in values.items()}
        )


class WebhookConfig(BaseModel):
    """Chat webhook target."""

    model_config = {"frozen": True}

    url: str
    username: str = ""

    @classmethod
    def load(cls, store: "ConfigStore") -> "WebhookConfig":
        """Read webhook URL and vehicle id.

        Raises ``ConfigMissing`` when no URL is configured.
        """
        url = store.get(USER_NAMESPACE, WEBHOOK_URL_KEY)
        if not url:
            raise ConfigMissing([f"{USER_NAMESPACE}/{WEBHOOK_URL_KEY}"])
        username = store.get(VEHICLE_NAMESPACE, VEHICLE_ID_KEY) or ""
        return cls(url=url, username=username)
