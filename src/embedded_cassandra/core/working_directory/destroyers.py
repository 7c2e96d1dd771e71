"""Working-directory destroyers applied when an instance stops.

A destroyer is any callable ``(working_directory, version) -> None``. Errors
propagate to the caller, which logs them without masking the stop outcome.
"""
from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Tuple

from .paths import resolve_inside

if TYPE_CHECKING:
    from ..version import Version

logger = logging.getLogger(__name__)

WorkingDirectoryDestroyer = Callable[[Path, "Version"], None]

# Everything that can be recreated from the archive; logs and data stay.
DEFAULT_DELETE_PATHS: Tuple[str, ...] = ("bin", "pylib", "lib", "tools", "doc", "javadoc", "interface")


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


@dataclass(frozen=True)
class DeleteAll:
    def __call__(self, working_directory: Path, version: "Version") -> None:
        if Path(working_directory).exists():
            logger.debug("Deleting working directory %s", working_directory)
            _remove(Path(working_directory))


@dataclass(frozen=True)
class DeleteOnly:
    paths: Tuple[str, ...] = DEFAULT_DELETE_PATHS

    def __call__(self, working_directory: Path, version: "Version") -> None:
        for relative in self.paths:
            _remove(resolve_inside(working_directory, relative))


@dataclass(frozen=True)
class DoNothing:
    def __call__(self, working_directory: Path, version: "Version") -> None:
        return None


def delete_all() -> DeleteAll:
    return DeleteAll()


def delete_only(*paths: str) -> DeleteOnly:
    return DeleteOnly(tuple(paths))


def do_nothing() -> DoNothing:
    return DoNothing()


__all__ = [
    "DEFAULT_DELETE_PATHS",
    "DeleteAll",
    "DeleteOnly",
    "DoNothing",
    "WorkingDirectoryDestroyer",
    "delete_all",
    "delete_only",
    "do_nothing",
]
