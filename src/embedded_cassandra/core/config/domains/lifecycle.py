"""Lifecycle timing configuration (``lifecycle`` section)."""
from __future__ import annotations

from functools import cached_property

from ..base import BaseDomainConfig


class LifecycleConfig(BaseDomainConfig):
    """Timeouts that bound start() and stop()."""

    def _config_section(self) -> str:
        return "lifecycle"

    @cached_property
    def default_version(self) -> str:
        return str(self._require("default_version"))

    @cached_property
    def startup_timeout_seconds(self) -> float:
        return self._float("startup_timeout_seconds")

    @cached_property
    def readiness_poll_interval_seconds(self) -> float:
        return self._float("readiness_poll_interval_seconds")

    @cached_property
    def stop_timeout_seconds(self) -> float:
        """Grace period between the interrupt signal and SIGKILL."""
        return self._float("stop_timeout_seconds")

    @cached_property
    def kill_timeout_seconds(self) -> float:
        return self._float("kill_timeout_seconds")

    @cached_property
    def register_shutdown_hook(self) -> bool:
        return bool(self._require("register_shutdown_hook"))
