"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class ApplyMode(StrEnum):
    """How the engine treats identities present on both sides."""

    ALWAYS_UPDATE = "always-update"
    SKIP_UNCHANGED = "skip-unchanged"


@dataclass
class ReconcileConfig:
    """Reconcile loop configuration."""

    directory: str = ""
    interval_seconds: int = 10
    retry_delay_seconds: int = 10
    apply_mode: ApplyMode = ApplyMode.ALWAYS_UPDATE


@dataclass
class APIConfig:
    """Status API configuration."""

    enabled: bool = True
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class KonvergeConfig:
    """Top-level Konverge configuration."""

    reconcile: ReconcileConfig = field(default_factory=ReconcileConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
