"""Configuration loading and validation."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from solar_switch.config.schema import AppConfig

logger = logging.getLogger(__name__)

# Credential fields masked in dumps (meter, relay and SMTP passwords, EAGLE install code)
_SECRET_KEYS = frozenset({"password", "install_code"})
_MASK = "********"


class ConfigManager:
    """Loads config from YAML files and validates it.

    ``config.defaults.yaml`` holds every setting; ``config.yaml`` overrides
    any subset of it. Configuration is read once at startup.
    """

    def __init__(
        self,
        defaults_path: Path | None = None,
        user_path: Path | None = None,
    ) -> None:
        self._defaults_path = defaults_path or Path("config.defaults.yaml")
        self._user_path = user_path or Path("config.yaml")
        self._config: AppConfig | None = None

    @property
    def config(self) -> AppConfig:
        if self._config is None:
            raise RuntimeError("Config not loaded. Call load() first.")
        return self._config

    def load(self) -> AppConfig:
        """Load configuration from defaults + user overrides.

        Raises:
            pydantic.ValidationError: a value is missing or out of range.
        """
        defaults = self._load_yaml(self._defaults_path)
        overrides = self._load_yaml(self._user_path)
        self._config = AppConfig.model_validate(self._deep_merge(defaults, overrides))
        logger.info(
            "Configuration loaded from %s%s",
            self._defaults_path, f" with overrides from {self._user_path}" if overrides else "",
        )
        return self._config

    def to_json(self, redact: bool = False) -> str:
        """Serialize the validated config; ``redact`` masks credentials for logging."""
        data = self.config.model_dump(mode="json")
        if redact:
            data = _redact(data)
        return json.dumps(data, indent=2)

    @staticmethod
    def _load_yaml(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        with open(path) as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Recursively merge override into base, returning a new dict."""
        result = dict(base)
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = ConfigManager._deep_merge(result[key], value)
            else:
                result[key] = value
        return result


def _redact(data: Any) -> Any:
    if isinstance(data, dict):
        return {
            key: _MASK if key in _SECRET_KEYS and value else _redact(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [_redact(item) for item in data]
    return data
