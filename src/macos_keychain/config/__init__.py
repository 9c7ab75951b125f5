"""Configuration loader for macos-keychain.

Loads settings from a YAML file with built-in defaults. Supports environment
variable overrides using the MACOS_KEYCHAIN_ prefix with double-underscore
nesting (e.g., MACOS_KEYCHAIN_LOGGING__LEVEL=DEBUG).
"""

from __future__ import annotations

import os
import pathlib
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator


# ---------------------------------------------------------------------------
# Config sub-models
# ---------------------------------------------------------------------------

class SecurityToolConfig(BaseModel):
    path: str = "/usr/bin/security"


class PermissionsConfig(BaseModel):
    mode: Literal["allowlist", "prompt", "allow_all"] = "allowlist"
    allowed_commands: list[str] = Field(default_factory=lambda: ["/usr/bin/security"])

    @field_validator("allowed_commands", mode="before")
    @classmethod
    def split_command_string(cls, value: Any) -> Any:
        """Accept a comma-separated string, as set from the environment."""
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value


class LoggingConfig(BaseModel):
    level: str = "WARNING"
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class KeychainConfig(BaseModel):
    default_keychain: str | None = None


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseModel):
    security: SecurityToolConfig = Field(default_factory=SecurityToolConfig)
    permissions: PermissionsConfig = Field(default_factory=PermissionsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    keychain: KeychainConfig = Field(default_factory=KeychainConfig)


# ---------------------------------------------------------------------------
# Deep merge helper
# ---------------------------------------------------------------------------

def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *override* into *base*, returning a new dict."""
    merged = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "MACOS_KEYCHAIN_"


def _coerce(value: str) -> Any:
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


def _collect_env_overrides() -> dict[str, Any]:
    """Collect MACOS_KEYCHAIN_* env vars and build a nested dict.

    Double-underscore separates nesting levels.
    Example: MACOS_KEYCHAIN_SECURITY__PATH=/opt/bin/security
    becomes  {"security": {"path": "/opt/bin/security"}}
    """
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(_ENV_PREFIX):
            continue
        parts = key[len(_ENV_PREFIX):].lower().split("__")
        current = overrides
        for part in parts[:-1]:
            current = current.setdefault(part, {})
        current[parts[-1]] = _coerce(value)
    return overrides


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

_BUILTIN_DEFAULTS_PATH = pathlib.Path(__file__).resolve().parents[3] / "config" / "defaults.yaml"


def load_settings(config_path: pathlib.Path | None = None) -> Settings:
    """Load settings with layered precedence: defaults < file < env vars.

    Parameters
    ----------
    config_path:
        Path to a YAML config file. If ``None`` the repository defaults are
        used; a missing file leaves the model defaults in place.
    """
    base: dict[str, Any] = {}

    path = config_path if config_path is not None else _BUILTIN_DEFAULTS_PATH
    if path.exists():
        with open(path) as fh:
            file_data = yaml.safe_load(fh)
        if isinstance(file_data, dict):
            base = _deep_merge(base, file_data)

    env_overrides = _collect_env_overrides()
    if env_overrides:
        base = _deep_merge(base, env_overrides)

    return Settings(**base)
