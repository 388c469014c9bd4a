"""Configuration for codex-session.

Two things are resolved here:

1. The Codex home directory, whose `sessions/` subtree holds the rollout
   files. Precedence: explicit override > $CODEX_HOME > ~/.codex.
2. User settings from ~/.codex-session/config.yaml, so defaults like the
   codex binary or page sizes don't need CLI flags on every run.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from codex_session.errors import CodexHomeError, ConfigError

CODEX_HOME_ENV = "CODEX_HOME"
CONFIG_DIR_ENV = "CODEX_SESSION_CONFIG_DIR"


class Settings(BaseModel):
    """User-tunable settings."""
    codex_bin: str = "codex"
    list_limit: int = Field(default=20, ge=1)
    picker_limit: int = Field(default=25, ge=1)
    browser_limit: int = Field(default=500, ge=1)
    # Records inspected per file before deciding whether it is a session
    head_record_limit: int = Field(default=10, ge=1)
    # Absolute bound on files inspected by a single listing
    max_scan_files: int = Field(default=10_000, ge=1)


def resolve_codex_home(override: Path | None = None) -> Path:
    """Resolve the Codex home directory.

    An explicit override or $CODEX_HOME must point at an existing
    directory and is canonicalized. The default ~/.codex is returned as-is
    even when missing; an absent sessions tree simply lists nothing.
    """
    if override is not None:
        return _canonicalize_existing(override)

    env_value = os.environ.get(CODEX_HOME_ENV, "")
    if env_value.strip():
        return _canonicalize_existing(Path(env_value))

    return Path.home() / ".codex"


def _canonicalize_existing(path: Path) -> Path:
    try:
        return path.expanduser().resolve(strict=True)
    except (OSError, RuntimeError):
        raise CodexHomeError(f"{path} does not exist")


def get_config_dir() -> Path:
    """Get the codex-session config directory."""
    env_value = os.environ.get(CONFIG_DIR_ENV)
    if env_value:
        return Path(env_value).expanduser()
    return Path.home() / ".codex-session"


def get_config_path() -> Path:
    return get_config_dir() / "config.yaml"


def load_config() -> dict[str, Any]:
    """Load the raw configuration mapping (empty when no file exists)."""
    config_path = get_config_path()
    if not config_path.exists():
        return {}
    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read {config_path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping")
    return data


def get_settings() -> Settings:
    """Load and validate settings, falling back to defaults."""
    try:
        return Settings(**load_config())
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {get_config_path()}: {e}")
