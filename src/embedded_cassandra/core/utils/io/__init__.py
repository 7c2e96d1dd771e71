"""I/O utilities.

- Core: atomic writes, directory management, best-effort removal
- YAML: read/write
- Locking: advisory file locks with bounded waits
"""
from __future__ import annotations

from .core import (
    PathLike,
    atomic_write,
    ensure_directory,
    ensure_parent_dir,
    make_executable,
    remove_quietly,
)
from .locking import (
    FileLock,
    LockTimeoutError,
    acquire_file_lock,
    is_locked,
    lock_path_for,
)
from .yaml import read_yaml, write_yaml

__all__ = [
    # core
    "PathLike",
    "ensure_parent_dir",
    "ensure_directory",
    "atomic_write",
    "remove_quietly",
    "make_executable",
    # locking
    "FileLock",
    "LockTimeoutError",
    "acquire_file_lock",
    "is_locked",
    "lock_path_for",
    # yaml
    "read_yaml",
    "write_yaml",
]
