"""Namespaced key-value store for user settings.

``ConfigStore`` mirrors the host config API (``get_values`` by prefix,
``delete``).  ``YamlConfigStore`` persists to a YAML file of the form
``{namespace: {key: value}}``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

import structlog
import yaml

logger = structlog.get_logger(__name__)


class ConfigStore(ABC):
    """Unified interface for the host config store."""

    @abstractmethod
    def get_values(self, namespace: str, prefix: str = "") -> Dict[str, str]:
        """Return every ``key -> value`` under *namespace* starting with *prefix*.

        Keys are returned unstripped.
        """

    @abstractmethod
    def get(self, namespace: str, key: str) -> Optional[str]:
        """Return a single value or ``None``."""

    @abstractmethod
    def set(self, namespace: str, key: str, value: str) -> None:
        """Store *value* under *namespace*/*key*."""

    @abstractmethod
    def delete(self, namespace: str, key: str) -> bool:
        """Remove *namespace*/*key*.  Returns ``True`` if it existed."""


class MemoryConfigStore(ConfigStore):
    """Dict-backed store; values are always strings."""

    def __init__(self, data: Optional[Dict[str, Dict[str, str]]] = None) -> None:
        self._data: Dict[str, Dict[str, str]] = {
            ns: {str(k): str(v) for k, v in (values or {}).items()}
            for ns, values in (data or {}).items()
        }

    def get_values(self, namespace: str, prefix: str = "") -> Dict[str, str]:
        values = self._data.get(namespace, {})
        return {k: v for k, v in values.items() if k.startswith(prefix)}

    def get(self, namespace: str, key: str) -> Optional[str]:
        return self._data.get(namespace, {}).get(key)

    def set(self, namespace: str, key: str, value: str) -> None:
        self._data.setdefault(namespace, {})[key] = str(value)
        self._changed()

    def delete(self, namespace: str, key: str) -> bool:
        values = self._data.get(namespace)
        if not values or key not in values:
            return False
        del values[key]
        if not values:
            del self._data[namespace]
        self._changed()
        return True

    def as_dict(self) -> Dict[str, Dict[str, str]]:
        return {ns: dict(values) for ns, values in self._data.items()}

    def _changed(self) -> None:
        """Hook called after every mutation."""


class YamlConfigStore(MemoryConfigStore):
    """``MemoryConfigStore`` persisted to a YAML file on every write."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        super().__init__(_load_yaml(self._path))

    @property
    def path(self) -> Path:
        return self._path

    def _changed(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as fh:
            yaml.safe_dump(self.as_dict(), fh, default_flow_style=False)
        logger.debug("config_store_saved", path=str(self._path))


def _load_yaml(path: Path) -> Dict[str, Dict[str, str]]:
    """Load ``{namespace: {key: value}}`` from *path*; missing file is empty.

    Raises
    ------
    ValueError
        If the YAML is invalid or not a mapping of mappings.
    """
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict) or not all(
        isinstance(v, dict) for v in data.values()
    ):
        raise ValueError(f"Config file {path} must map namespaces to key/value maps")
    return data
