"""Download configuration (``download`` section)."""
from __future__ import annotations

import enum
from functools import cached_property
from pathlib import Path
from typing import Optional, Tuple

from ..base import BaseDomainConfig


class ChecksumMode(str, enum.Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"
    DISABLED = "disabled"


class DownloadConfig(BaseDomainConfig):
    """Mirrors, timeouts and verification settings for artifact downloads."""

    def _config_section(self) -> str:
        return "download"

    @cached_property
    def mirrors(self) -> Tuple[str, ...]:
        return tuple(str(m) for m in self._require("mirrors"))

    @cached_property
    def cache_directory(self) -> Path:
        return Path(str(self._require("cache_directory"))).expanduser()

    @cached_property
    def connect_timeout_seconds(self) -> float:
        return self._float("connect_timeout_seconds")

    @cached_property
    def read_timeout_seconds(self) -> float:
        return self._float("read_timeout_seconds")

    @cached_property
    def proxy(self) -> Optional[str]:
        value = self.section.get("proxy")
        return str(value) if value else None

    @cached_property
    def max_redirects(self) -> int:
        return self._int("max_redirects")

    @cached_property
    def checksum(self) -> ChecksumMode:
        return ChecksumMode(str(self._require("checksum")))

    @cached_property
    def progress_step_percent(self) -> int:
        return self._int("progress_step_percent")

    @cached_property
    def chunk_size(self) -> int:
        return self._int("chunk_size")
