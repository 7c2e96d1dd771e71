"""Typed accessors for each configuration section."""
from __future__ import annotations

from .download import ChecksumMode, DownloadConfig
from .lifecycle import LifecycleConfig
from .locking import FileLockingConfig
from .process import ProcessConfig

__all__ = [
    "ChecksumMode",
    "DownloadConfig",
    "FileLockingConfig",
    "LifecycleConfig",
    "ProcessConfig",
]
