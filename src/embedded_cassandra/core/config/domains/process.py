"""Child process configuration (``process`` section)."""
from __future__ import annotations

from functools import cached_property

from ..base import BaseDomainConfig


class ProcessConfig(BaseDomainConfig):
    def _config_section(self) -> str:
        return "process"

    @cached_property
    def output_buffer_lines(self) -> int:
        """How many recent output lines are kept for error reports."""
        return self._int("output_buffer_lines")
