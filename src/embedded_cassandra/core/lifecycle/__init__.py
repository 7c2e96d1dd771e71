"""Lifecycle of an embedded Cassandra instance."""
from __future__ import annotations

from .builder import CassandraBuilder
from .controller import LifecycleController
from .seeds import simple_seed_provider
from .settings import Settings
from .shutdown import ShutdownHook
from .state import TRANSITIONS, State

__all__ = [
    "CassandraBuilder",
    "LifecycleController",
    "Settings",
    "ShutdownHook",
    "State",
    "TRANSITIONS",
    "simple_seed_provider",
]
