"""
Configuration loader for terminal-broker.yml.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path

import yaml

from terminal_broker.config.models import BrokerSettings
from terminal_broker.config.settings import get_env

logger = logging.getLogger("terminal-broker")

# Configuration paths
CONFIG_PATH = Path(get_env("config_path", "/data/config") or "/data/config")
BROKER_CONFIG_FILE = CONFIG_PATH / "terminal-broker.yml"

# Environment overrides applied on top of the YAML file
_ENV_OVERRIDES = (
    ("workspace_root", ("workspace", "root")),
    ("host_workspace_root", ("workspace", "host_root")),
    ("docker_base_url", ("runtime", "base_url")),
    ("docker_fallback_url", ("runtime", "fallback_url")),
    ("image_build_context", ("runtime", "build_context")),
    ("ui_static_dir", ("ui", "static_dir")),
)


class BrokerConfig:
    """Manages broker configuration from YAML file."""

    _lock = threading.Lock()
    _config: dict = {}
    _typed_config: BrokerSettings | None = None
    _last_load: float = 0
    _cache_duration: int = 60

    @classmethod
    def load(cls) -> dict:
        """Load broker configuration from YAML file."""
        now = time.time()
        if cls._config and (now - cls._last_load) < cls._cache_duration:
            return cls._config

        with cls._lock:
            # Double-check after acquiring the lock
            now = time.time()
            if cls._config and (now - cls._last_load) < cls._cache_duration:
                return cls._config
            return cls._load_locked(now)

    @classmethod
    def _load_locked(cls, now: float) -> dict:
        """Load config while holding ``_lock``. Called from :meth:`load`."""
        defaults = BrokerSettings().model_dump()

        if not BROKER_CONFIG_FILE.exists():
            logger.info(f"Broker config not found, using defaults: {BROKER_CONFIG_FILE}")
            config = defaults
        else:
            try:
                with open(BROKER_CONFIG_FILE, "r") as f:
                    file_config = yaml.safe_load(f) or {}
                config = cls._deep_merge(defaults, file_config)
                logger.info(f"Loaded broker config from {BROKER_CONFIG_FILE}")
            except Exception as e:
                logger.error(f"Error loading broker config: {e}")
                config = defaults

        cls._apply_env_overrides(config)
        cls._config = config
        cls._last_load = now
        cls._typed_config = BrokerSettings.model_validate(cls._config)
        return cls._config

    @classmethod
    def _apply_env_overrides(cls, config: dict) -> None:
        for env_key, (section, field) in _ENV_OVERRIDES:
            value = get_env(env_key)
            if value:
                config.setdefault(section, {})[field] = value

    @classmethod
    def _deep_merge(cls, base: dict, override: dict) -> dict:
        """Deep merge two dictionaries."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = cls._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    @classmethod
    def get(cls, *keys: str, default: object = None) -> object:
        """Get a nested config value using multiple keys."""
        config = cls.load()
        for key in keys:
            if isinstance(config, dict) and key in config:
                config = config[key]
            else:
                return default
        return config

    @classmethod
    def settings(cls) -> BrokerSettings:
        """Get typed configuration as a BrokerSettings instance."""
        cls.load()
        assert cls._typed_config is not None
        return cls._typed_config

    @classmethod
    def reload(cls) -> None:
        """Force reload configuration."""
        with cls._lock:
            cls._last_load = 0
            cls._config = {}
        cls.load()
