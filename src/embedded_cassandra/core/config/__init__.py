"""Configuration loading and typed accessors."""
from __future__ import annotations

from .base import BaseDomainConfig
from .cache import clear_config_cache, get_cached_config
from .domains import (
    ChecksumMode,
    DownloadConfig,
    FileLockingConfig,
    LifecycleConfig,
    ProcessConfig,
)
from .manager import ConfigManager

__all__ = [
    "BaseDomainConfig",
    "ChecksumMode",
    "ConfigManager",
    "DownloadConfig",
    "FileLockingConfig",
    "LifecycleConfig",
    "ProcessConfig",
    "clear_config_cache",
    "get_cached_config",
]
