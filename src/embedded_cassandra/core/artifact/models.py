from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from ..version import Version


def default_archive_name(version: Version) -> str:
    return f"apache-cassandra-{version}-bin.tar.gz"


@dataclass(frozen=True)
class ArtifactDescriptor:
    """Where an artifact comes from and where it is cached."""

    version: Version
    urls: Tuple[str, ...]
    destination: Path
    archive_name: str

    @property
    def archive_path(self) -> Path:
        return self.destination / self.archive_name

    @property
    def cache_key(self) -> Tuple[str, str]:
        return (str(self.version), str(self.destination.expanduser().resolve()))


__all__ = ["ArtifactDescriptor", "default_archive_name"]
