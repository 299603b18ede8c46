"""Configuration management for elgato-light."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "elgato-light"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"

# Environment overrides
ENV_ADDRESSES = "ELGATO_LIGHT_IP"
ENV_CONFIG_FILE = "ELGATO_LIGHT_CONFIG"
ENV_DISABLE_DISCOVERY = "ELGATO_LIGHT_DISABLE_DISCOVERY"

# Limits accepted by the lights
MIN_TEMPERATURE = 2900
MAX_TEMPERATURE = 7000


def default_cache_file() -> Path:
    """Location of the discovered-targets cache, honouring XDG_CACHE_HOME."""
    base = os.environ.get("XDG_CACHE_HOME")
    cache_dir = Path(base) if base else Path.home() / ".cache"
    return cache_dir / "elgato-light" / "targets.yaml"


def config_file_from_env() -> Path:
    """Get the config file path, checking the environment variable first."""
    env_path = os.environ.get(ENV_CONFIG_FILE)
    return Path(env_path).expanduser() if env_path else DEFAULT_CONFIG_FILE


def addresses_from_env() -> Optional[str]:
    """Get the default explicit address list from the environment, if set."""
    value = os.environ.get(ENV_ADDRESSES, "").strip()
    return value or None


@dataclass
class LightConfig:
    """User configuration for elgato-light."""

    discovery_timeout: float = 3.0
    request_timeout: float = 5.0
    default_brightness: int = 10
    default_temperature: int = 3000
    cache_file: Path = field(default_factory=default_cache_file)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "discovery_timeout": self.discovery_timeout,
            "request_timeout": self.request_timeout,
            "default_brightness": self.default_brightness,
            "default_temperature": self.default_temperature,
            "cache_file": str(self.cache_file),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LightConfig:
        """Create from dictionary."""
        cache_file = data.get("cache_file")
        config = cls(
            discovery_timeout=float(data.get("discovery_timeout", 3.0)),
            request_timeout=float(data.get("request_timeout", 5.0)),
            default_brightness=int(data.get("default_brightness", 10)),
            default_temperature=int(data.get("default_temperature", 3000)),
            cache_file=Path(cache_file).expanduser() if cache_file else default_cache_file(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Raise ValueError if any setting is out of range."""
        if self.discovery_timeout <= 0:
            raise ValueError("discovery_timeout must be positive")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if not 0 <= self.default_brightness <= 100:
            raise ValueError("default_brightness must be between 0 and 100")
        if not MIN_TEMPERATURE <= self.default_temperature <= MAX_TEMPERATURE:
            raise ValueError(
                f"default_temperature must be between {MIN_TEMPERATURE} and {MAX_TEMPERATURE}"
            )

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> LightConfig:
        """Load configuration from file."""
        if config_file is None:
            config_file = config_file_from_env()
        if not config_file.exists():
            return cls()

        try:
            with open(config_file, "r") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError("top level must be a mapping")
            return cls.from_dict(data)
        except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
            logger.warning("Failed to load config from %s: %s", config_file, e)
            return cls()

    def save(self, config_file: Optional[Path] = None) -> None:
        """Save configuration to file."""
        if config_file is None:
            config_file = config_file_from_env()
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, "w") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False, default_flow_style=False)
