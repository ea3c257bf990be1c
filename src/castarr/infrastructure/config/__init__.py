from __future__ import annotations

from .load import load_config
from .schema import (
    AppConfig,
    CacheConfig,
    EnvOverrides,
    ManifestConfig,
    ProbeConfig,
    SessionConfig,
)

__all__ = [
    "AppConfig",
    "CacheConfig",
    "EnvOverrides",
    "ManifestConfig",
    "ProbeConfig",
    "SessionConfig",
    "load_config",
]
