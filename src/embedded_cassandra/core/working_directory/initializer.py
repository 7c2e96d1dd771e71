"""Materialize a Cassandra working directory from a distribution.

The source is either an archive (``.tar.gz``, ``.tgz``, ``.tar``, ``.zip``)
or an already extracted distribution. Only the distribution home (the
directory holding ``bin/``, ``conf/`` and ``lib/``) is copied; documentation
directories are skipped.
"""
from __future__ import annotations

import enum
import logging
import os
import shutil
import stat
import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import FrozenSet, Iterable, Optional

from ..exceptions import WorkingDirectoryInitializationError
from ..utils import interrupts
from ..utils.io import ensure_directory
from ..version import Version
from .customizers import WorkingDirectoryCustomizer

logger = logging.getLogger(__name__)

SKIPPED_DIRECTORIES: FrozenSet[str] = frozenset({"javadoc", "doc", "licenses"})
_HOME_MARKERS = ("bin", "conf", "lib")


class CopyStrategy(str, enum.Enum):
    """What to do with files that already exist in the working directory."""

    REPLACE_EXISTING = "replace_existing"
    SKIP_EXISTING = "skip_existing"


def is_distribution_home(path: Path) -> bool:
    return all((path / marker).is_dir() for marker in _HOME_MARKERS)


def find_distribution_home(root: Path, max_depth: int = 2) -> Optional[Path]:
    """Breadth-first search for the directory that contains ``bin/``, ``conf/`` and ``lib/``."""
    level = [Path(root)]
    for _ in range(max_depth + 1):
        next_level = []
        for directory in level:
            if is_distribution_home(directory):
                return directory
            try:
                next_level.extend(sorted(p for p in directory.iterdir() if p.is_dir()))
            except OSError:
                continue
        level = next_level
    return None


def _is_archive(path: Path) -> bool:
    name = path.name.lower()
    return name.endswith((".tar.gz", ".tgz", ".tar", ".tar.bz2", ".tar.xz", ".zip"))


def _extract_tar(archive: Path, staging: Path) -> None:
    with tarfile.open(archive, "r:*") as tar:
        if hasattr(tarfile, "data_filter"):
            # Rejects absolute or escaping members and keeps exec bits.
            tar.extractall(staging, filter="data")
        else:
            tar.extractall(staging)


def _extract_zip(archive: Path, staging: Path) -> None:
    with zipfile.ZipFile(archive) as zf:
        for info in zf.infolist():
            extracted = Path(zf.extract(info, staging))
            mode = (info.external_attr >> 16) & 0o7777
            if os.name == "posix" and mode and not info.is_dir():
                os.chmod(extracted, stat.S_IMODE(mode))


class WorkingDirectoryInitializer:
    """Copy the distribution into the working directory and run customizers."""

    def __init__(
        self,
        *,
        copy_strategy: CopyStrategy = CopyStrategy.REPLACE_EXISTING,
        skip_directories: Iterable[str] = SKIPPED_DIRECTORIES,
    ) -> None:
        self.copy_strategy = CopyStrategy(copy_strategy)
        self.skip_directories = frozenset(skip_directories)

    def initialize(
        self,
        source: Path,
        target: Path,
        version: Version,
        customizers: Iterable[WorkingDirectoryCustomizer] = (),
    ) -> Path:
        """Populate ``target`` from ``source`` and apply ``customizers`` in order.

        Returns:
            ``target``.

        Raises:
            WorkingDirectoryInitializationError: Extraction, copying or a
                customizer failed.
        """
        source = Path(source)
        target = Path(target)
        try:
            ensure_directory(target)
            if source.is_dir():
                self._copy_distribution(source, target)
            elif source.is_file() and _is_archive(source):
                with tempfile.TemporaryDirectory(prefix="embedded-cassandra-extract-") as staging:
                    logger.info("Extracting %s", source)
                    if source.name.lower().endswith(".zip"):
                        _extract_zip(source, Path(staging))
                    else:
                        _extract_tar(source, Path(staging))
                    self._copy_distribution(Path(staging), target)
            else:
                raise FileNotFoundError(f"{source} is neither a distribution directory nor a supported archive")
        except (OSError, tarfile.TarError, zipfile.BadZipFile, ValueError) as exc:
            raise WorkingDirectoryInitializationError(
                f"Could not initialize working directory {target} from {source}: {exc}",
                context={"source": str(source), "target": str(target)},
            ) from exc

        for customizer in customizers:
            interrupts.check_interrupted()
            try:
                customizer(target, version)
            except Exception as exc:
                raise WorkingDirectoryInitializationError(
                    f"Working directory customizer {customizer!r} failed: {exc}",
                    context={"target": str(target), "customizer": repr(customizer)},
                ) from exc
        logger.debug("Working directory %s is ready for Cassandra %s", target, version)
        return target

    def _copy_distribution(self, root: Path, target: Path) -> None:
        home = find_distribution_home(root)
        if home is None:
            raise FileNotFoundError(f"No Cassandra distribution (bin/, conf/, lib/) found in {root}")
        if home.resolve() == target.resolve():
            return
        logger.debug("Copying %s to %s", home, target)
        for current, dirnames, filenames in os.walk(home):
            interrupts.check_interrupted()
            current_path = Path(current)
            relative = current_path.relative_to(home)
            if relative == Path("."):
                dirnames[:] = [d for d in dirnames if d not in self.skip_directories]
            dest_dir = target / relative
            dest_dir.mkdir(parents=True, exist_ok=True)
            for name in filenames:
                self._copy_file(current_path / name, dest_dir / name)

    def _copy_file(self, src: Path, dest: Path) -> None:
        if dest.exists() or dest.is_symlink():
            if self.copy_strategy is CopyStrategy.SKIP_EXISTING:
                return
            dest.unlink()
        # copy2 keeps the permission bits (a no-op where the platform has none).
        shutil.copy2(src, dest, follow_symlinks=False)


__all__ = [
    "CopyStrategy",
    "SKIPPED_DIRECTORIES",
    "WorkingDirectoryInitializer",
    "find_distribution_home",
    "is_distribution_home",
]
