"""
Configuration management for wikideceased.
Loads and validates settings from YAML files and environment variables.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "WIKIDECEASED_"

# Ancestor selectors identifying transient preview surfaces (hover cards,
# popovers, tooltips). Links under any of these are never classified.
DEFAULT_PREVIEW_SELECTORS = [
    ".mwe-popups",  # Wikipedia page previews
    ".popover",
    ".preview",
    ".tooltip",
    ".hovercard",
    ".navbox",  # Navigation boxes
    '[role="tooltip"]',
    '[class*="preview"]',
    '[class*="popup"]',
    '[class*="popover"]',
]


class GeneralConfig(BaseModel):
    """General configuration."""

    project_name: str = "wikideceased"
    version: str = "0.1.0"
    log_level: str = "INFO"
    logs_dir: str = "logs"


class APIConfig(BaseModel):
    """Summary API configuration."""

    model_config = ConfigDict(extra="forbid")

    origin: str = "https://en.wikipedia.org"
    summary_path: str = "/api/rest_v1/page/summary/"
    user_agent: str = "WikipediaDeceasedDetector/1.0"
    timeout_seconds: float = Field(default=20.0, gt=0)


class SchedulerConfig(BaseModel):
    """Request scheduler configuration.

    Attributes:
        max_concurrent: Maximum summary requests in flight at once.
        min_interval_seconds: Minimum gap between consecutive dispatch starts.
        request_timeout_seconds: Deadline for a single dispatch, so a hung
            request cannot hold a concurrency slot forever.
    """

    model_config = ConfigDict(extra="forbid")

    max_concurrent: int = Field(default=4, ge=1)
    min_interval_seconds: float = Field(default=0.2, ge=0)
    request_timeout_seconds: float = Field(default=30.0, gt=0)


class ServiceConfig(BaseModel):
    """Link classification service configuration."""

    model_config = ConfigDict(extra="forbid")

    batch_size: int = Field(default=10, ge=1)
    preview_selectors: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PREVIEW_SELECTORS)
    )


class CacheConfig(BaseModel):
    """Result cache configuration.

    max_entries=None keeps the cache unbounded, which is fine for one
    browsing session. Long-lived processes should set a cap.
    """

    model_config = ConfigDict(extra="forbid")

    namespace: str = "wiki-deceased-cache"
    session_file: str = "data/session_cache.json"
    max_entries: int | None = Field(default=None, ge=1)


class StyleConfig(BaseModel):
    """Rendering options for decorated links."""

    text_color: str = "#b31b00"
    font_weight: str = "600"
    text_decoration: str = "dashed underline"
    opacity: float = Field(default=0.7, ge=0.0, le=1.0)
    background_color: str = "#ffffff"
    use_background: bool = False
    custom_css: str = ""


class Settings(BaseModel):
    """Main settings container."""

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    style: StyleConfig = Field(default_factory=StyleConfig)


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


def _load_yaml_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _load_yaml_config(config_dir: Path) -> dict[str, Any]:
    """Load settings.yaml and apply the `settings` section of local.yaml.

    Example local.yaml:
        settings:
          scheduler:
            max_concurrent: 2

    Args:
        config_dir: Configuration directory path.

    Returns:
        Merged configuration dictionary.
    """
    config = _load_yaml_file(config_dir / "settings.yaml")
    local_overrides = _load_yaml_file(config_dir / "local.yaml")
    if "settings" in local_overrides:
        config = _deep_merge(config, local_overrides["settings"])
    return config


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides.

    Environment variables should be prefixed with WIKIDECEASED_ and use
    double underscores for nested keys.

    Example:
        WIKIDECEASED_SCHEDULER__MAX_CONCURRENT=2

    Args:
        config: Configuration dictionary.

    Returns:
        Configuration with environment overrides.
    """
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX) or key == f"{ENV_PREFIX}CONFIG_DIR":
            continue

        key_path = key[len(ENV_PREFIX) :].lower().split("__")

        current = config
        for part in key_path[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        final_key = key_path[-1]
        try:
            if value.lower() in ("true", "false"):
                current[final_key] = value.lower() == "true"
            elif "." in value:
                current[final_key] = float(value)
            else:
                current[final_key] = int(value)
        except ValueError:
            current[final_key] = value

    return config


def get_config_dir() -> Path:
    """Get the configuration directory (WIKIDECEASED_CONFIG_DIR or ./config)."""
    return Path(os.environ.get(f"{ENV_PREFIX}CONFIG_DIR", "config"))


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
    config = _load_yaml_config(get_config_dir())
    config = _apply_env_overrides(config)
    return Settings(**config)


def get_project_root() -> Path:
    """Get the project root directory.

    Returns:
        Project root path.
    """
    # Assuming this file is at wikideceased/utils/config.py
    return Path(__file__).parent.parent.parent
