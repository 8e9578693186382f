"""Configuration loading from a YAML config file and environment variables.

The config file (``/app/config.yaml`` unless ``KONVERGE_CONFIG_FILE`` says
otherwise) supplies the manifest ``directory``.  ``KONVERGE_*`` environment
variables override anything the file sets.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

from konverge.models.config import (
    APIConfig,
    ApplyMode,
    KonvergeConfig,
    LogConfig,
    ReconcileConfig,
)

DEFAULT_CONFIG_FILE = "/app/config.yaml"


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KONVERGE_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_apply_mode(value: str) -> ApplyMode:
    try:
        return ApplyMode(value.lower())
    except ValueError:
        valid = {m.value for m in ApplyMode}
        raise ValueError(f"Invalid apply mode: {value}. Must be one of {valid}") from None


def load_config_file(path: str | os.PathLike[str]) -> dict[str, Any]:
    """Read the YAML config file at *path*.

    A missing file yields an empty mapping; a file that is not a YAML
    mapping raises ValueError.
    """
    config_path = Path(path)
    if not config_path.is_file():
        return {}
    with config_path.open(encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")
    return data


def load_config() -> KonvergeConfig:
    """Load configuration from the config file and KONVERGE_* environment variables."""
    file_values = load_config_file(_env("CONFIG_FILE", DEFAULT_CONFIG_FILE))

    directory = _env("DIRECTORY", str(file_values.get("directory") or ""))
    if not directory:
        raise ValueError("Manifest directory must be set (config file 'directory' or KONVERGE_DIRECTORY)")

    return KonvergeConfig(
        reconcile=ReconcileConfig(
            directory=directory,
            interval_seconds=_env_int("INTERVAL_SECONDS", 10, min_val=1, max_val=3600),
            retry_delay_seconds=_env_int("RETRY_DELAY_SECONDS", 10, min_val=1, max_val=3600),
            apply_mode=_validate_apply_mode(_env("APPLY_MODE", ApplyMode.ALWAYS_UPDATE.value)),
        ),
        api=APIConfig(
            enabled=_env_bool("API_ENABLED", True),
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
