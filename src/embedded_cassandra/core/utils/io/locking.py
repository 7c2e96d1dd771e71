"""Advisory file locking for resources shared between processes.

The artifact cache may be used by several independent test runs at once, so
downloads into it are guarded by an ``fcntl.flock`` lock on a sidecar
``<file>.lock``. Waiting is always bounded: a lock that stays held longer
than the timeout raises :class:`LockTimeoutError` instead of blocking forever.
"""
from __future__ import annotations

import fcntl
import logging
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator, Optional

from ...exceptions import LockTimeoutError
from .. import interrupts
from .core import PathLike, ensure_directory

logger = logging.getLogger(__name__)

_THREAD_MUTEXES: dict[str, threading.Lock] = {}
_THREAD_MUTEXES_GUARD = threading.Lock()


def _thread_mutex(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _THREAD_MUTEXES_GUARD:
        lock = _THREAD_MUTEXES.get(key)
        if lock is None:
            lock = _THREAD_MUTEXES.setdefault(key, threading.Lock())
        return lock


def lock_path_for(file_path: PathLike) -> Path:
    """Return the sidecar lock file used for ``file_path``."""
    target = Path(file_path)
    return target.with_name(target.name + ".lock")


def _validate_positive(name: str, value: float) -> None:
    if value <= 0:
        raise ValueError(f"{name} must be positive (got {value})")


class FileLock:
    """Exclusive advisory lock on ``<file_path>.lock``.

    Threads of the same process are serialized through a per-path mutex
    before the OS lock is attempted, so the lock also works between threads.

    Usage:
        with FileLock(archive, timeout=30):
            ...
    """

    def __init__(
        self,
        file_path: PathLike,
        timeout: Optional[float] = None,
        *,
        poll_interval: Optional[float] = None,
    ) -> None:
        if timeout is None or poll_interval is None:
            from embedded_cassandra.core.config import FileLockingConfig

            cfg = FileLockingConfig()
            timeout = cfg.timeout_seconds if timeout is None else timeout
            poll_interval = cfg.poll_interval_seconds if poll_interval is None else poll_interval
        _validate_positive("timeout", timeout)
        _validate_positive("poll_interval", poll_interval)

        self.target = Path(file_path)
        self.lock_file = lock_path_for(self.target)
        self.timeout = float(timeout)
        self.poll_interval = float(poll_interval)
        self._fh: Optional[IO[str]] = None
        self._mutex: Optional[threading.Lock] = None

    @property
    def locked(self) -> bool:
        return self._fh is not None

    def acquire(self) -> "FileLock":
        """Block until the lock is held or the timeout expires.

        Raises:
            LockTimeoutError: The lock could not be obtained within ``timeout``.
            ThreadInterruptedError: The waiting thread was interrupted.
        """
        if self._fh is not None:
            raise RuntimeError(f"Lock on {self.target} is already held by this object")

        deadline = time.monotonic() + self.timeout
        ensure_directory(self.lock_file.parent)
        mutex = _thread_mutex(self.lock_file)

        while not mutex.acquire(timeout=min(self.poll_interval, max(deadline - time.monotonic(), 0.0))):
            interrupts.check_interrupted()
            if time.monotonic() >= deadline:
                raise self._timeout_error()

        fh = None
        try:
            fh = open(self.lock_file, "a+", encoding="utf-8")
            waited = False
            while True:
                try:
                    fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except OSError:
                    if time.monotonic() >= deadline:
                        raise self._timeout_error()
                    if not waited:
                        logger.info("Waiting for lock %s held by another process", self.lock_file)
                        waited = True
                    interrupts.sleep(self.poll_interval)
        except BaseException:
            if fh is not None:
                fh.close()
            mutex.release()
            raise

        self._fh = fh
        self._mutex = mutex
        return self

    def release(self) -> None:
        """Release the lock. Releasing an unheld lock is a no-op."""
        fh, mutex = self._fh, self._mutex
        self._fh = None
        self._mutex = None
        if fh is None:
            return
        try:
            fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
        finally:
            try:
                fh.close()
            finally:
                if mutex is not None:
                    mutex.release()

    def _timeout_error(self) -> LockTimeoutError:
        return LockTimeoutError(
            f"Could not acquire lock on {self.target} within {self.timeout:g}s",
            context={"lock_file": str(self.lock_file), "timeout_seconds": self.timeout},
        )

    def __enter__(self) -> "FileLock":
        return self.acquire()

    def __exit__(self, *exc_info) -> None:
        self.release()


@contextmanager
def acquire_file_lock(
    file_path: PathLike,
    timeout: Optional[float] = None,
    *,
    poll_interval: Optional[float] = None,
) -> Iterator[FileLock]:
    """Acquire an exclusive lock on ``file_path`` with a timeout.

    Args:
        file_path: File the lock guards; ``<file_path>.lock`` is the locked file.
        timeout: Maximum seconds to wait before raising ``LockTimeoutError``.
            Defaults to ``file_locking.timeout_seconds``.
        poll_interval: Sleep between non-blocking attempts. Defaults to
            ``file_locking.poll_interval_seconds``.

    Yields:
        The held :class:`FileLock`.
    """
    lock = FileLock(file_path, timeout, poll_interval=poll_interval)
    lock.acquire()
    try:
        yield lock
    finally:
        lock.release()


def is_locked(file_path: PathLike) -> bool:
    """Return True when another holder currently owns the lock on ``file_path``."""
    lock_file = lock_path_for(file_path)
    if not lock_file.exists():
        return False
    with open(lock_file, "a+", encoding="utf-8") as fh:
        try:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            return True
        fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
        return False


__all__ = ["FileLock", "LockTimeoutError", "acquire_file_lock", "is_locked", "lock_path_for"]
