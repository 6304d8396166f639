"""Tests for telemetry_relay.config and telemetry_relay.config_store."""

from __future__ import annotations

from pathlib import Path

import pytest

from telemetry_relay.config import RelaySettings, RouteConfig, WebhookConfig
from telemetry_relay.config_store import MemoryConfigStore, YamlConfigStore
from telemetry_relay.exceptions import ConfigMissing


class TestRelaySettings:
    def test_defaults(self) -> None:
        settings = RelaySettings()
        assert settings.tick_interval_seconds == 60.0
        assert settings.enable_route_planner is True
        assert settings.enable_webhook is False

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DRY_RUN", "true")
        monkeypatch.setenv("METRICS_SCENARIO", "charging")
        settings = RelaySettings()
        assert settings.dry_run is True
        assert settings.metrics_scenario == "charging"


class TestRouteConfig:
    def test_from_store(self, store: MemoryConfigStore) -> None:
        config = RouteConfig.load(store)
        assert config.url == "http://planner.test/1/tlm/send"
        assert config.user_token == "user-token-1"
        assert config.car_model == "tesla:m3:20:bt37:heatpump"
        assert config.missing == ()

    def test_partial_values_default(self) -> None:
        config = RouteConfig.from_values({"user_token": "abc"})
        assert config.user_token == "abc"
        assert config.url == "http://api.iternio.com/1/tlm/send"
        assert config.car_model == "@@:@@:@@:@@:@@"
        assert config.missing == ("url", "car_model")

    def test_empty_value_counts_as_missing(self) -> None:
        assert "url" in RouteConfig.from_values({"url": ""}).missing

    def test_frozen(self) -> None:
        config = RouteConfig.from_values({})
        with pytest.raises(ValueError):
            config.url = "http://x"  # type: ignore[misc]


class TestWebhookConfig:
    def test_load(self, store: MemoryConfigStore) -> None:
        config = WebhookConfig.load(store)
        assert config.url == "http://hooks.test/services/x"
        assert config.username == "MYCAR"

    def test_missing_url(self) -> None:
        with pytest.raises(ConfigMissing) as exc_info:
            WebhookConfig.load(MemoryConfigStore({"vehicle": {"id": "X"}}))
        assert exc_info.value.keys == ("usr/slack.url",)

    def test_missing_vehicle_id_defaults_empty(self) -> None:
        store = MemoryConfigStore({"usr": {"slack.url": "http://h"}})
        assert WebhookConfig.load(store).username == ""


class TestConfigStore:
    def test_get_values_by_prefix(self, store: MemoryConfigStore) -> None:
        values = store.get_values("usr", "abrp.")
        assert set(values) == {"abrp.url", "abrp.user_token", "abrp.car_model"}
        assert store.get_values("nope") == {}

    def test_delete(self, store: MemoryConfigStore) -> None:
        assert store.delete("usr", "abrp.url") is True
        assert store.delete("usr", "abrp.url") is False
        assert store.get("usr", "abrp.url") is None

    def test_values_are_strings(self) -> None:
        store = MemoryConfigStore({"vehicle": {"id": 42}})
        assert store.get("vehicle", "id") == "42"

    def test_yaml_persists(self, tmp_path: Path) -> None:
        path = tmp_path / "relay.yaml"
        store = YamlConfigStore(path)
        store.set("usr", "abrp.user_token", "tok")
        store.set("vehicle", "id", "CAR1")
        store.delete("vehicle", "id")

        reloaded = YamlConfigStore(path)
        assert reloaded.get("usr", "abrp.user_token") == "tok"
        assert reloaded.get_values("vehicle") == {}

    def test_yaml_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert YamlConfigStore(tmp_path / "none.yaml").as_dict() == {}

    def test_invalid_yaml_raises(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.yaml"
        bad.write_text("usr: [unclosed\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid YAML"):
            YamlConfigStore(bad)

    def test_non_mapping_yaml_raises(self, tmp_path: Path) -> None:
        bad = tmp_path / "list.yaml"
        bad.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="must map namespaces"):
            YamlConfigStore(bad)
