"""Configuration loading for Tedee Hub."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class HouseConfig(BaseModel):
    """House-level configuration."""

    name: str = "Home"
    language: str = "en"


class DeviceConfig(BaseModel):
    """Device configuration from config file."""

    id: str
    name: str
    type: str = "tedee"
    room: str | None = None
    config: dict[str, Any] = Field(default_factory=dict)


class MonitorConfig(BaseModel):
    """Polling behaviour of the operation and state monitor."""

    poll_interval: float = Field(default=0.9, ge=0)
    operation_max_tries: int = Field(default=5, ge=1)
    state_max_tries: int = Field(default=6, ge=1)
    cycle_timeout: float = Field(default=15.0, gt=0)


class SyncConfig(BaseModel):
    """Periodic synchronization of idle devices."""

    enabled: bool = True
    interval: float = Field(default=300.0, gt=0)


class HubConfig(BaseModel):
    """Main configuration model."""

    house: HouseConfig = Field(default_factory=HouseConfig)
    devices: list[DeviceConfig] = Field(default_factory=list)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)


class SecretsConfig(BaseModel):
    """Secrets configuration model."""

    tedee: dict[str, str] = Field(default_factory=dict)


def find_config_dir() -> Path:
    """Find the config directory.

    Looks for config directory in the following order:
    1. ./config (relative to cwd)
    2. ../config (parent of cwd)
    3. ~/.config/tedee-hub
    """
    cwd = Path.cwd()

    if (cwd / "config").is_dir():
        return cwd / "config"

    if (cwd.parent / "config").is_dir():
        return cwd.parent / "config"

    home_config = Path.home() / ".config" / "tedee-hub"
    if home_config.is_dir():
        return home_config

    return cwd / "config"


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found."""
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_config(config_dir: Path | None = None) -> HubConfig:
    """Load the main configuration."""
    if config_dir is None:
        config_dir = find_config_dir()

    config_path = config_dir / "config.yaml"
    data = load_yaml(config_path)
    return HubConfig.model_validate(data)


def load_secrets(config_dir: Path | None = None) -> SecretsConfig:
    """Load the secrets configuration."""
    if config_dir is None:
        config_dir = find_config_dir()

    secrets_path = config_dir / "secrets.yaml"
    data = load_yaml(secrets_path)
    return SecretsConfig.model_validate(data)
