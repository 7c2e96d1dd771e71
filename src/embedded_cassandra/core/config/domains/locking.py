"""File locking configuration (``file_locking`` section)."""
from __future__ import annotations

from functools import cached_property

from ..base import BaseDomainConfig


class FileLockingConfig(BaseDomainConfig):
    def _config_section(self) -> str:
        return "file_locking"

    @cached_property
    def timeout_seconds(self) -> float:
        return self._float("timeout_seconds")

    @cached_property
    def poll_interval_seconds(self) -> float:
        return self._float("poll_interval_seconds")
