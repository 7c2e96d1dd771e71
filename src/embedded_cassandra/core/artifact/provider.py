"""Resolve a Cassandra version to a local distribution archive.

Downloads are coordinated at two levels:

* inside one process, :class:`SingleFlight` lets exactly one thread per
  ``(version, destination)`` do the work while the others wait for it;
* between processes, an advisory lock on ``<archive>.lock`` makes other
  programs wait (bounded by ``file_locking.timeout_seconds``) and then find
  the finished archive in the cache.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from ..config import DownloadConfig
from ..exceptions import ArtifactUnavailableError, DownloadError
from ..utils import interrupts
from ..utils.io import acquire_file_lock, ensure_directory
from ..version import Version
from .http import HttpDownloader
from .models import ArtifactDescriptor, default_archive_name
from .single_flight import SingleFlight

logger = logging.getLogger(__name__)

VersionLike = Union[Version, str]

# Shared by every provider so that two providers pointing at the same cache
# directory still download once.
_DOWNLOADS = SingleFlight()


def _as_version(version: VersionLike) -> Version:
    return version if isinstance(version, Version) else Version.parse(version)


def is_cached(archive: Path) -> bool:
    """Basic presence check for a previously downloaded archive."""
    try:
        return archive.is_file() and archive.stat().st_size > 0
    except OSError:
        return False


class ArtifactProvider:
    """Download Cassandra archives from a list of mirrors into an on-disk cache.

    Args:
        mirrors: URL templates containing ``{version}``; tried in order.
        cache_directory: Root of the cache; archives go to ``<root>/<version>/``.
        downloader: Performs the HTTP transfer of one URL.
        lock_timeout: Upper bound on waiting for another process's download.
    """

    def __init__(
        self,
        *,
        mirrors: Optional[Iterable[str]] = None,
        cache_directory: Optional[Path] = None,
        downloader: Optional[HttpDownloader] = None,
        lock_timeout: Optional[float] = None,
        config: Optional[DownloadConfig] = None,
        single_flight: Optional[SingleFlight] = None,
    ) -> None:
        cfg = config or DownloadConfig()
        self.mirrors: Tuple[str, ...] = tuple(mirrors) if mirrors is not None else cfg.mirrors
        self.cache_directory = Path(cache_directory).expanduser() if cache_directory else cfg.cache_directory
        self.downloader = downloader or HttpDownloader(config=cfg)
        self.lock_timeout = lock_timeout
        self._single_flight = single_flight or _DOWNLOADS

    def descriptor(self, version: VersionLike, destination: Optional[Path] = None) -> ArtifactDescriptor:
        version = _as_version(version)
        dest = Path(destination).expanduser() if destination else self.cache_directory / str(version)
        urls = tuple(template.format(version=version) for template in self.mirrors)
        return ArtifactDescriptor(
            version=version,
            urls=urls,
            destination=dest,
            archive_name=default_archive_name(version),
        )

    def resolve(self, version: VersionLike, destination: Optional[Path] = None) -> Path:
        """Return the path of the local archive for ``version``, downloading it if needed.

        Raises:
            ArtifactUnavailableError: Every candidate location failed.
            LockTimeoutError: Another process held the download lock too long.
            ThreadInterruptedError: The calling thread was interrupted.
        """
        descriptor = self.descriptor(version, destination)
        return self._single_flight.do(descriptor.cache_key, lambda: self._resolve(descriptor))

    def _resolve(self, descriptor: ArtifactDescriptor) -> Path:
        archive = descriptor.archive_path
        if is_cached(archive):
            logger.debug("Using cached archive %s", archive)
            return archive

        ensure_directory(descriptor.destination)
        with acquire_file_lock(archive, timeout=self.lock_timeout):
            # Another process may have finished while we waited for the lock.
            if is_cached(archive):
                logger.info("Using archive %s downloaded by another process", archive)
                return archive
            return self._download(descriptor)

    def _download(self, descriptor: ArtifactDescriptor) -> Path:
        archive = descriptor.archive_path
        failures: List[Tuple[str, BaseException]] = []
        for url in descriptor.urls:
            interrupts.check_interrupted()
            logger.info("Downloading Apache Cassandra %s from %s", descriptor.version, url)
            try:
                self.downloader.download(url, archive)
            except (DownloadError, OSError) as exc:
                logger.warning("Could not download Apache Cassandra %s from %s: %s", descriptor.version, url, exc)
                failures.append((url, exc))
                continue
            logger.info("Apache Cassandra %s has been downloaded to %s", descriptor.version, archive)
            return archive

        last = failures[-1][1] if failures else None
        raise ArtifactUnavailableError(str(descriptor.version), failures) from last


class LocalArtifactProvider:
    """Serve an archive or exploded distribution that already exists locally."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()

    def resolve(self, version: VersionLike, destination: Optional[Path] = None) -> Path:
        if not self.path.exists():
            raise ArtifactUnavailableError(
                str(version),
                [(str(self.path), FileNotFoundError(f"No such file or directory: {self.path}"))],
            )
        return self.path


__all__ = ["ArtifactProvider", "LocalArtifactProvider", "is_cached"]
