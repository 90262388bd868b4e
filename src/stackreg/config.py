"""Configuration loading and dot-path access."""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from stackreg.errors import ConfigError, ConfigNotFoundError

logger = logging.getLogger(__name__)

__all__ = ["Config", "DEFAULTS", "default_data_dir"]

DEFAULTS: dict[str, Any] = {
    "data_dir": None,
    "registry": {
        "sources": None,
        "single_select_types": [
            "frontend-framework",
            "ui-library",
            "backend-framework",
            "backend-service",
            "auth-provider",
            "database",
            "deployment",
        ],
        "slow_module_ms": 100,
    },
    "cache": {
        "enabled": True,
        "disk": True,
        "dir": None,
        "max_entries": 500,
        "ttl_seconds": 3600,
        "module_ttl_seconds": 86400,
        "search_ttl_seconds": 1800,
    },
}


def default_data_dir() -> Path:
    """Return the user-scoped data directory (``$FSD_HOME`` or ``~/.fsd``)."""
    env = os.environ.get("FSD_HOME")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".fsd"


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Configuration accessor with dot-path key support.

    User values are merged over :data:`DEFAULTS`, so ``get`` always finds a
    value for every documented key.
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = _deep_merge(DEFAULTS, data or {})

    @classmethod
    def load(cls, path: str | Path) -> Config:
        """Load a YAML configuration file.

        Raises:
            ConfigNotFoundError: If the file does not exist.
            ConfigError: If the file cannot be read, is not valid YAML or is
                not a mapping.
        """
        path = Path(path)
        if not path.exists():
            raise ConfigNotFoundError(config_path=str(path))

        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(message=f"Cannot read config file {path}: {e}", cause=e) from e
        try:
            parsed = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(message=f"Invalid YAML in config file: {path}", cause=e) from e

        if parsed is None:
            return cls()
        if not isinstance(parsed, dict):
            raise ConfigError(message=f"Config file must be a YAML mapping: {path}")
        logger.debug("Loaded configuration from %s", path)
        return cls(parsed)

    @classmethod
    def from_env(cls) -> Config:
        """Load ``config.yaml`` from the data directory when present."""
        path = default_data_dir() / "config.yaml"
        if path.exists():
            return cls.load(path)
        return cls()

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dot-path key."""
        parts = key.split(".")
        current: Any = self._data
        for part in parts:
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    @property
    def data_dir(self) -> Path:
        """Resolved user data directory."""
        configured = self.get("data_dir")
        if configured:
            return Path(configured).expanduser()
        return default_data_dir()

    @property
    def cache_dir(self) -> Path:
        """Resolved disk cache directory."""
        configured = self.get("cache.dir")
        if configured:
            return Path(configured).expanduser()
        return self.data_dir / "cache"

    def to_dict(self) -> dict[str, Any]:
        """Return a deep copy of the merged configuration."""
        return copy.deepcopy(self._data)
