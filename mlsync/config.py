"""Synchronizer configuration.

Settings come from an optional YAML file and are then overridden by
``MLSYNC_*`` environment variables. Nothing here is global: a ``SyncConfig``
is built once and passed explicitly to the synchronizer and its backends.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path

import yaml

from mlsync.errors import ConfigError

ENV_PREFIX = "MLSYNC_"


@dataclass
class SyncConfig:
    """Tunables for one synchronizer."""

    svn_path: str = "svn"
    git_branch: str = "master"
    remote_name: str = "origin"
    max_rollbacks: int = 20
    command_timeout: float | None = 300.0  # seconds per blocking call, None = wait forever
    record_history: bool = False

    def __post_init__(self) -> None:
        if self.max_rollbacks < 0:
            raise ConfigError(f"max_rollbacks must be >= 0, got {self.max_rollbacks}")
        if self.command_timeout is not None and self.command_timeout <= 0:
            raise ConfigError(
                f"command_timeout must be positive or null, got {self.command_timeout}"
            )


_FIELD_TYPES = {
    "svn_path": str,
    "git_branch": str,
    "remote_name": str,
    "max_rollbacks": int,
    "command_timeout": float,
    "record_history": bool,
}


def load_config(path: str | Path | None = None, environ: dict | None = None) -> SyncConfig:
    """Load a ``SyncConfig`` from a YAML file and the environment.

    Args:
        path: Optional YAML file holding a mapping of setting names to values.
        environ: Environment to read overrides from. Defaults to ``os.environ``.

    Raises:
        ConfigError: If the file cannot be read, is not a mapping, names an
            unknown setting, or holds a value of the wrong type.
    """
    values: dict = {}

    if path is not None:
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Could not read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

        for key, value in data.items():
            values[key] = _coerce(key, value)

    env = os.environ if environ is None else environ
    for name in _FIELD_TYPES:
        raw = env.get(ENV_PREFIX + name.upper())
        if raw is not None:
            values[name] = _coerce_env(name, raw)

    return SyncConfig(**values)


def _coerce(key: str, value):
    if key not in _FIELD_TYPES:
        known = ", ".join(f.name for f in fields(SyncConfig))
        raise ConfigError(f"Unknown setting '{key}'. Known settings: {known}")

    expected = _FIELD_TYPES[key]
    if value is None and key == "command_timeout":
        return None
    if expected is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise ConfigError(
            f"Setting '{key}' must be of type {expected.__name__}, got {type(value).__name__}"
        )
    return value


def _coerce_env(key: str, raw: str):
    expected = _FIELD_TYPES[key]
    if expected is str:
        return raw
    if expected is bool:
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if key == "command_timeout" and raw.strip().lower() in ("", "none", "null"):
        return None
    try:
        return expected(raw)
    except ValueError as e:
        raise ConfigError(f"Environment variable {ENV_PREFIX}{key.upper()}: {e}") from e
