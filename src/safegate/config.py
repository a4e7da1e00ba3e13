"""Runtime settings via environment variables and an optional TOML file."""

from __future__ import annotations

import os
import tomllib
from datetime import datetime
from pathlib import Path

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from safegate.errors import ConfigurationError

ENV_PREFIX = "SAFEGATE_"
DEFAULT_CONFIG_HOME = Path.home() / ".config" / "safegate"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_HOME / "safegate.toml"
DEFAULT_AUDIT_PATH = Path.home() / ".local" / "state" / "safegate" / "audit.jsonl"


class Settings(BaseSettings):
    # Directory holding dangerous-patterns.jsonc, critical-paths.jsonc, secret-patterns.jsonc
    config_dir: Path = DEFAULT_CONFIG_HOME

    # Confirmation
    confirmation_timeout: float | None = Field(60.0, gt=0)
    confirmation_device: str | None = None

    # Audit
    audit_enabled: bool = True
    audit_path: Path = DEFAULT_AUDIT_PATH
    audit_grace_seconds: float = Field(0.5, ge=0)

    # Temporal context (an explicit tag overrides the computed one)
    time_context: str = ""
    session_start: datetime | None = None
    long_session_minutes: int = Field(120, gt=0)

    # Logging
    log_level: str = "warning"
    json_logs: bool = False

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, extra="ignore")


def config_file_path() -> Path:
    override = os.environ.get(f"{ENV_PREFIX}CONFIG_FILE")
    return Path(override).expanduser() if override else DEFAULT_CONFIG_FILE


def read_config_file(path: Path) -> dict:
    """Read the flat TOML settings file. A missing file yields no values."""
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read config file {path}: {exc.strerror or exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {path}: {exc}") from exc

    # Accept either flat keys or a [safegate] table.
    section = raw.get("safegate", raw)
    if not isinstance(section, dict):
        raise ConfigurationError(f"Config file {path} must contain a table of settings")
    return section


def default_settings() -> Settings:
    """Built-in defaults. Reads neither the environment nor the settings file."""
    return Settings.model_construct()


def load_settings(config_file: Path | None = None, **overrides) -> Settings:
    """Build settings: overrides > environment > config file > defaults."""
    path = config_file or config_file_path()
    file_values = {
        key: value
        for key, value in read_config_file(path).items()
        if f"{ENV_PREFIX}{key.upper()}" not in os.environ
    }
    try:
        return Settings(**{**file_values, **overrides})
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings (environment or {path})", details=exc.errors()) from exc
