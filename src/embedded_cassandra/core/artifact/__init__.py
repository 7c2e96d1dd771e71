"""Artifact acquisition: mirrors, HTTP download, caching."""
from __future__ import annotations

from .http import HttpDownloader, parse_checksum
from .models import ArtifactDescriptor, default_archive_name
from .provider import ArtifactProvider, LocalArtifactProvider, is_cached
from .single_flight import SingleFlight

__all__ = [
    "ArtifactDescriptor",
    "ArtifactProvider",
    "HttpDownloader",
    "LocalArtifactProvider",
    "SingleFlight",
    "default_archive_name",
    "is_cached",
    "parse_checksum",
]
