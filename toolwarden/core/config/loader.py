"""
Configuration loader — reads the orchestrator config into a typed model.

The config file is optional: a missing file yields the defaults, so a
fresh machine works out of the box. It reads YAML, validates against
the Pydantic schema, then applies environment overrides.

Lookup order for the file:
    explicit path (``--config``)  >  TOOLWARDEN_CONFIG env var
    >  ~/.toolwarden/config.yml
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

from toolwarden.core.services.tool_install.data.constants import NATIVE_DIST_URL

logger = logging.getLogger(__name__)

# Default config filename and home
CONFIG_FILE = "config.yml"
HOME_DIR_NAME = ".toolwarden"

# Environment overrides → config field
_ENV_OVERRIDES: dict[str, str] = {
    "TOOLWARDEN_ROOT": "root",
    "TOOLWARDEN_CACHE_DIR": "cache_dir",
    "TOOLWARDEN_DOWNLOAD_DIR": "download_dir",
    "TOOLWARDEN_REGISTRY_MIRROR": "registry_mirror",
    "TOOLWARDEN_NATIVE_CHANNEL": "native_channel",
}


class ConfigError(Exception):
    """Raised when the orchestrator configuration is invalid."""


def default_home() -> Path:
    return Path.home() / HOME_DIR_NAME


class OrchestratorConfig(BaseModel):
    """Everything the orchestrator needs besides the catalog.

    Paths default under ``~/.toolwarden``. Durations are in seconds.
    """

    root: Path = Field(default_factory=lambda: default_home() / "tools")
    cache_dir: Path = Field(default_factory=lambda: default_home() / "npm-cache")
    download_dir: Path = Field(default_factory=lambda: default_home() / "downloads")

    registry_mirror: str = ""              # e.g. https://registry.npmmirror.com
    native_channel: str = "latest"         # latest, stable, or explicit version
    native_dist_url: str = NATIVE_DIST_URL

    lock_wait_timeout: float = 60.0        # on-demand wait ceiling
    lock_poll_interval: float = 1.0
    lock_stale_after: float = 1800.0       # abandoned lock markers
    settle_delay: float = 0.5              # before post-install status check

    npm_timeout: int = 600
    version_timeout: int = 10
    http_timeout: int = 60

    @field_validator("root", "cache_dir", "download_dir", mode="before")
    @classmethod
    def _expand_path(cls, value: object) -> object:
        if isinstance(value, str):
            return Path(os.path.expandvars(value)).expanduser()
        if isinstance(value, Path):
            return value.expanduser()
        return value

    @property
    def lock_dir(self) -> Path:
        return self.root / ".locks"


def find_config_file() -> Path | None:
    """Return the config file to use, or None when none exists."""
    env_path = os.environ.get("TOOLWARDEN_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    candidate = default_home() / CONFIG_FILE
    return candidate if candidate.is_file() else None


def load_config(path: Path | None = None) -> OrchestratorConfig:
    """Load and validate the orchestrator configuration.

    Args:
        path: Explicit config path. If None, uses ``find_config_file()``.

    Returns:
        Validated OrchestratorConfig (defaults when no file exists).

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    explicit = path is not None
    if path is None:
        path = find_config_file()

    data: dict = {}
    if path is not None:
        if not path.is_file():
            if explicit:
                raise ConfigError(f"Config file not found: {path}")
            logger.debug("No config at %s, using defaults", path)
        else:
            data = _read_yaml(path)

    for env_var, field_name in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            data[field_name] = value

    try:
        config = OrchestratorConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    logger.debug("Config: root=%s cache=%s", config.root, config.cache_dir)
    return config


def _read_yaml(path: Path) -> dict:
    logger.debug("Loading config from %s", path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The file may wrap everything under a "toolwarden" key or be flat
    if isinstance(data.get("toolwarden"), dict):
        data = data["toolwarden"]
    return dict(data)
