"""
embedded-cassandra CLI package.

Commands are discovered from ``cli/commands``.
"""
from ._dispatcher import main
from ._output import OutputFormatter

__all__ = ["OutputFormatter", "main"]
