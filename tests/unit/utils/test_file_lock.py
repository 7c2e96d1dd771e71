"""Tests for the advisory file lock."""
from __future__ import annotations

import subprocess
import sys
import threading
import time
from pathlib import Path

import pytest

from embedded_cassandra.core.exceptions import LockTimeoutError, ThreadInterruptedError
from embedded_cassandra.core.utils import interrupts
from embedded_cassandra.core.utils.io import FileLock, acquire_file_lock, is_locked, lock_path_for
from helpers.timeouts import LOCK_TIMEOUT, PROCESS_WAIT_TIMEOUT, THREAD_JOIN_TIMEOUT, short_sleep

HOLD_LOCK_SCRIPT = """
import fcntl, sys, time
fh = open(sys.argv[1], "a+")
fcntl.flock(fh.fileno(), fcntl.LOCK_EX)
print("locked", flush=True)
sys.stdin.readline()
"""


@pytest.fixture
def foreign_holder(tmp_path: Path):
    """Another OS process holding the lock on ``tmp_path/archive.tar.gz``."""
    target = tmp_path / "archive.tar.gz"
    proc = subprocess.Popen(
        [sys.executable, "-c", HOLD_LOCK_SCRIPT, str(lock_path_for(target))],
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        text=True,
    )
    assert proc.stdout is not None and proc.stdout.readline().strip() == "locked"
    try:
        yield target, proc
    finally:
        if proc.poll() is None:
            proc.communicate("\n", timeout=PROCESS_WAIT_TIMEOUT)


class TestFileLock:
    def test_lock_file_is_sidecar(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "archive.tar.gz"
        with acquire_file_lock(target, timeout=LOCK_TIMEOUT) as lock:
            assert lock.locked
            assert lock.lock_file == tmp_path / "a" / "archive.tar.gz.lock"
            assert lock.lock_file.exists()
        assert not lock.locked

    def test_reacquire_after_release(self, tmp_path: Path) -> None:
        target = tmp_path / "file"
        with acquire_file_lock(target, timeout=LOCK_TIMEOUT):
            pass
        with acquire_file_lock(target, timeout=LOCK_TIMEOUT):
            pass

    def test_release_without_acquire_is_noop(self, tmp_path: Path) -> None:
        FileLock(tmp_path / "file", timeout=1).release()

    def test_double_acquire_on_same_object_is_an_error(self, tmp_path: Path) -> None:
        lock = FileLock(tmp_path / "file", timeout=LOCK_TIMEOUT)
        with lock:
            with pytest.raises(RuntimeError):
                lock.acquire()

    def test_rejects_non_positive_timeout(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            FileLock(tmp_path / "file", timeout=0)
        with pytest.raises(ValueError):
            FileLock(tmp_path / "file", timeout=1, poll_interval=0)

    def test_defaults_come_from_configuration(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EMBEDDED_CASSANDRA_FILE_LOCKING__TIMEOUT_SECONDS", "12.5")
        lock = FileLock(tmp_path / "file")
        assert lock.timeout == 12.5
        assert lock.poll_interval == 0.1


class TestThreadExclusion:
    def test_threads_are_serialized(self, tmp_path: Path) -> None:
        target = tmp_path / "file"
        active = []
        overlaps = []

        def worker() -> None:
            with acquire_file_lock(target, timeout=THREAD_JOIN_TIMEOUT, poll_interval=0.01):
                active.append(1)
                if len(active) > 1:
                    overlaps.append(True)
                short_sleep()
                active.pop()

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(THREAD_JOIN_TIMEOUT)
        assert not overlaps

    def test_second_thread_times_out(self, tmp_path: Path) -> None:
        target = tmp_path / "file"
        errors = []

        def contender() -> None:
            try:
                with acquire_file_lock(target, timeout=0.2, poll_interval=0.02):
                    pass
            except LockTimeoutError as exc:
                errors.append(exc)

        with acquire_file_lock(target, timeout=LOCK_TIMEOUT):
            t = threading.Thread(target=contender)
            t.start()
            t.join(THREAD_JOIN_TIMEOUT)
        assert len(errors) == 1
        assert errors[0].context["timeout_seconds"] == 0.2


class TestCrossProcess:
    def test_times_out_while_other_process_holds_lock(self, foreign_holder) -> None:
        target, _proc = foreign_holder
        assert is_locked(target)
        started = time.monotonic()
        with pytest.raises(LockTimeoutError) as exc_info:
            with acquire_file_lock(target, timeout=0.3, poll_interval=0.05):
                pass
        assert time.monotonic() - started >= 0.3
        assert exc_info.value.context["lock_file"].endswith("archive.tar.gz.lock")

    def test_acquires_once_other_process_releases(self, foreign_holder) -> None:
        target, proc = foreign_holder

        def release_soon() -> None:
            short_sleep()
            proc.communicate("\n", timeout=PROCESS_WAIT_TIMEOUT)

        releaser = threading.Thread(target=release_soon)
        releaser.start()
        with acquire_file_lock(target, timeout=LOCK_TIMEOUT, poll_interval=0.02) as lock:
            assert lock.locked
        releaser.join(THREAD_JOIN_TIMEOUT)

    def test_waiting_is_interruptible(self, foreign_holder) -> None:
        target, _proc = foreign_holder
        errors = []

        def waiter() -> None:
            try:
                with acquire_file_lock(target, timeout=30, poll_interval=0.05):
                    pass
            except ThreadInterruptedError as exc:
                errors.append(exc)

        t = threading.Thread(target=waiter)
        t.start()
        short_sleep()
        interrupts.interrupt(t)
        t.join(THREAD_JOIN_TIMEOUT)
        assert not t.is_alive()
        assert len(errors) == 1

    def test_is_locked_false_without_holder(self, tmp_path: Path) -> None:
        assert not is_locked(tmp_path / "missing")
        with acquire_file_lock(tmp_path / "file", timeout=LOCK_TIMEOUT):
            pass
        assert not is_locked(tmp_path / "file")
