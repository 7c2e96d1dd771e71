"""Core building blocks: artifacts, working directories, processes, lifecycle."""
from __future__ import annotations

from .exceptions import EmbeddedCassandraError
from .lifecycle import CassandraBuilder, LifecycleController, Settings, State
from .version import Version

__all__ = [
    "CassandraBuilder",
    "EmbeddedCassandraError",
    "LifecycleController",
    "Settings",
    "State",
    "Version",
]
