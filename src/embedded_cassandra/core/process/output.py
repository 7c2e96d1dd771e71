"""Drain a child process's stdout/stderr and fan lines out to consumers.

Both pipes are read by daemon threads for the whole life of the process so
the child never blocks on a full pipe buffer. Every line is logged and kept
in a bounded buffer; consumers attached later get the buffered lines replayed
first, so readiness checks cannot miss an early log line.
"""
from __future__ import annotations

import collections
import logging
import threading
from typing import IO, Callable, Deque, List, Optional

logger = logging.getLogger(__name__)

LineConsumer = Callable[[str], None]

PROCESS_LOGGER_PREFIX = "embedded_cassandra.process"


class ProcessOutput:
    """Line-oriented view over a child's output streams."""

    def __init__(self, name: str, *, max_lines: int = 1000) -> None:
        self.name = name
        self._lines: Deque[str] = collections.deque(maxlen=max_lines)
        self._consumers: List[LineConsumer] = []
        self._lock = threading.Lock()
        self._threads: List[threading.Thread] = []
        self.process_logger = logging.getLogger(f"{PROCESS_LOGGER_PREFIX}.{name}")

    def start(self, stdout: Optional[IO[bytes]], stderr: Optional[IO[bytes]]) -> None:
        for stream, level, label in ((stdout, logging.INFO, "stdout"), (stderr, logging.ERROR, "stderr")):
            if stream is None:
                continue
            thread = threading.Thread(
                target=self._drain,
                args=(stream, level),
                name=f"{self.name}-{label}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)

    def _drain(self, stream: IO[bytes], level: int) -> None:
        try:
            for raw in iter(stream.readline, b""):
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                self._dispatch(line, level)
        except (OSError, ValueError) as exc:
            # The pipe was closed underneath us while the process was being killed.
            logger.debug("Stopped reading output of %s: %s", self.name, exc)
        finally:
            try:
                stream.close()
            except OSError:
                pass

    def _dispatch(self, line: str, level: int) -> None:
        self.process_logger.log(level, line)
        with self._lock:
            self._lines.append(line)
            consumers = list(self._consumers)
            for consumer in consumers:
                self._notify(consumer, line)

    def _notify(self, consumer: LineConsumer, line: str) -> bool:
        try:
            consumer(line)
        except Exception:
            logger.warning("Output consumer %r failed; detaching it", consumer, exc_info=True)
            if consumer in self._consumers:
                self._consumers.remove(consumer)
            return False
        return True

    def attach(self, consumer: LineConsumer, *, replay: bool = True) -> None:
        """Start feeding lines to ``consumer``, first replaying buffered ones."""
        with self._lock:
            if replay:
                for line in list(self._lines):
                    if not self._notify(consumer, line):
                        return
            self._consumers.append(consumer)

    def detach(self, consumer: LineConsumer) -> None:
        with self._lock:
            if consumer in self._consumers:
                self._consumers.remove(consumer)

    def lines(self) -> List[str]:
        """Snapshot of the buffered (most recent) lines."""
        with self._lock:
            return list(self._lines)

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the drain threads to reach end-of-stream."""
        for thread in self._threads:
            thread.join(timeout)


__all__ = ["LineConsumer", "ProcessOutput", "PROCESS_LOGGER_PREFIX"]
