"""picotui settings.

Settings are layered, later sources winning:

1. Built-in defaults
2. ``~/.config/picotui/config.yaml`` (keys ``url``, ``refresh``, ``debug``,
   ``verify_ssl``, ``connect_timeout``, ``request_timeout``)
3. Environment variables ``PICOTUI_URL``, ``PICOTUI_REFRESH``, ``PICOTUI_DEBUG``
4. Explicit command-line values
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from picotui.core.exceptions import ConfigError

DEFAULT_BASE_URL = "http://localhost:8080"
DEFAULT_REFRESH_INTERVAL = 5

# YAML key -> model field
_FILE_KEYS = {
    "url": "base_url",
    "refresh": "refresh_interval",
    "debug": "debug",
    "verify_ssl": "verify_ssl",
    "connect_timeout": "connect_timeout",
    "request_timeout": "request_timeout",
}

_ENV_KEYS = {
    "PICOTUI_URL": "base_url",
    "PICOTUI_REFRESH": "refresh_interval",
    "PICOTUI_DEBUG": "debug",
}


class PicotuiConfig(BaseModel):
    """Runtime settings for the dashboard."""

    model_config = ConfigDict(extra="forbid")

    base_url: str = DEFAULT_BASE_URL
    refresh_interval: int = DEFAULT_REFRESH_INTERVAL
    debug: bool = False
    connect_timeout: float = 5.0
    request_timeout: float = 10.0
    # Clusters commonly run with self-signed certificates.
    verify_ssl: bool = False

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate base URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("refresh_interval")
    @classmethod
    def validate_refresh_interval(cls, v: int) -> int:
        """Validate refresh interval is non-negative (0 disables auto refresh)."""
        if v < 0:
            raise ValueError("refresh_interval must be non-negative")
        return v

    @field_validator("connect_timeout", "request_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @property
    def auto_refresh(self) -> bool:
        """Whether the periodic refresh timer is enabled."""
        return self.refresh_interval > 0

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the config file path.

        Returns:
            Path to the config file (~/.config/picotui/config.yaml).
        """
        return Path.home() / ".config" / "picotui" / "config.yaml"

    @classmethod
    def _read_file(cls, config_path: Path) -> dict[str, Any]:
        if not config_path.exists():
            return {}
        try:
            with config_path.open() as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError("Invalid config file format", details=str(e)) from e
        except OSError as e:
            raise ConfigError("Cannot read config file", details=str(e)) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError("Invalid config file format", details=f"{config_path} is not a mapping")

        unknown = sorted(set(data) - set(_FILE_KEYS))
        if unknown:
            raise ConfigError("Unknown config keys", details=", ".join(unknown))
        return {_FILE_KEYS[key]: value for key, value in data.items()}

    @classmethod
    def load(
        cls,
        overrides: dict[str, Any] | None = None,
        config_path: Path | None = None,
    ) -> PicotuiConfig:
        """Load settings from file, environment and explicit overrides.

        Args:
            overrides: Explicit values (usually from the command line). Keys
                with a None value are ignored.
            config_path: Config file to read instead of the default location.

        Returns:
            Validated configuration.

        Raises:
            ConfigError: If the file is malformed or a value is invalid.
        """
        config_dict = cls._read_file(config_path or cls.get_config_path())

        for env_name, field in _ENV_KEYS.items():
            if env_value := os.environ.get(env_name):
                config_dict[field] = env_value

        for key, value in (overrides or {}).items():
            if value is not None:
                config_dict[key] = value

        try:
            return cls(**config_dict)
        except ValidationError as e:
            raise ConfigError("Invalid configuration", details=str(e)) from e
