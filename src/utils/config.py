"""
Configuration management for bbrun-proxy.
Loads and validates settings from YAML files and environment variables.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

from src.proxy.options import FrontendOptions

CONFIG_DIR_ENV = "BBRUN_CONFIG_DIR"
ENV_PREFIX = "BBRUN_"

# Never coerced to bool/int/float
STRING_KEYS = frozenset({"url", "frontend", "host", "log_file", "log_level", "key_env"})


class GeneralConfig(BaseModel):
    """General configuration."""

    model_config = ConfigDict(extra="forbid")

    log_level: str = "INFO"
    log_json: bool = True
    log_file: str | None = None


class ServerConfig(BaseModel):
    """HTTP listener configuration."""

    model_config = ConfigDict(extra="forbid")

    host: str = "0.0.0.0"
    port: int = 8080


class BoardConfig(BaseModel):
    """The board this proxy fronts.

    `url` points at the board's `.json` document; the run endpoint is derived
    from it per request.
    """

    model_config = ConfigDict(extra="forbid")

    url: str = ""
    options: FrontendOptions = Field(default_factory=FrontendOptions)


class UpstreamConfig(BaseModel):
    """Downstream board API configuration."""

    model_config = ConfigDict(extra="forbid")

    timeout: float | None = None  # None = wait as long as the runtime allows
    key_env: str = "BB_LIVE_KEY"


class Settings(BaseModel):
    """Main settings container."""

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    board: BoardConfig = Field(default_factory=BoardConfig)
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries.

    Args:
        base: Base dictionary.
        override: Override dictionary.

    Returns:
        Merged dictionary.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _load_yaml_config(config_dir: Path) -> dict[str, Any]:
    """Load settings.yaml with the `settings` section of local.yaml on top.

    Example local.yaml:
        settings:
          board:
            url: https://example.com/boards/chat.json

    Args:
        config_dir: Configuration directory path.

    Returns:
        Merged configuration dictionary.
    """
    config = _read_yaml(config_dir / "settings.yaml")
    local_overrides = _read_yaml(config_dir / "local.yaml")
    if "settings" in local_overrides:
        config = _deep_merge(config, local_overrides["settings"])
    return config


def _coerce_env_value(value: str) -> Any:
    """Parse an environment string as bool, int or float where possible."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides.

    Environment variables should be prefixed with BBRUN_ and use
    double underscores for nested keys.

    Example:
        BBRUN_GENERAL__LOG_LEVEL=DEBUG
        BBRUN_BOARD__OPTIONS__FRONTEND=false
        BBRUN_BOARD__OPTIONS__STYLE__COLOR_PRIMARY=#e74c3c

    Style keys use the snake_case field names, since env names are
    case-insensitive.

    Args:
        config: Configuration dictionary.

    Returns:
        Configuration with environment overrides.
    """
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX) or key == CONFIG_DIR_ENV:
            continue

        key_path = key[len(ENV_PREFIX) :].lower().split("__")

        current = config
        for part in key_path[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        final_key = key_path[-1]
        if final_key == "frontend" and value.lower() == "false":
            current[final_key] = False
        elif final_key in STRING_KEYS or "style" in key_path[:-1]:
            current[final_key] = value
        else:
            current[final_key] = _coerce_env_value(value)

    return config


def load_settings(config_dir: Path | None = None) -> Settings:
    """Build settings from defaults, YAML files and environment variables.

    Args:
        config_dir: Directory holding settings.yaml. Uses BBRUN_CONFIG_DIR
            (or ./config) if None.

    Returns:
        Settings instance.
    """
    if config_dir is None:
        config_dir = Path(os.environ.get(CONFIG_DIR_ENV, "config"))

    config = _load_yaml_config(config_dir)
    config = _apply_env_overrides(config)
    return Settings(**config)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get application settings.

    Settings are loaded from:
    1. Default values
    2. YAML configuration files
    3. Environment variables (highest priority)

    Returns:
        Settings instance.
    """
    return load_settings()
