"""
embedded-cassandra - run a real Apache Cassandra server from tests.

Downloads (and caches) a Cassandra distribution, prepares a private working
directory, launches the server and waits until it accepts CQL clients.
"""

__version__ = "1.0.0"

from .core import (  # noqa: E402
    CassandraBuilder,
    EmbeddedCassandraError,
    LifecycleController,
    Settings,
    State,
    Version,
)

__all__ = [
    "CassandraBuilder",
    "EmbeddedCassandraError",
    "LifecycleController",
    "Settings",
    "State",
    "Version",
    "__version__",
]
