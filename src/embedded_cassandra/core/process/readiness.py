"""Decide when a launched server is ready to accept clients.

Readiness checks watch the server's log output (and probe the reported port)
while :class:`ReadinessMonitor` polls them at a short fixed interval. The
monitor looks at the process first on every pass, so a server that dies
before it is ready is reported as :class:`ProcessExitedPrematurelyError`
even when the startup timeout has also run out.
"""
from __future__ import annotations

import abc
import ipaddress
import logging
import re
import threading
import time
from typing import Iterable, List, Optional, Sequence

from ..exceptions import ProcessExitedPrematurelyError, StartupTimeoutError, TransportStartupError
from ..utils import interrupts
from ..utils.network import is_port_open
from .launcher import ProcessHandle

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 0.1

_NATIVE_LISTENING = re.compile(r"listening\s*for\s*cql\s*clients\s*on.*/(.+):(\d+)", re.IGNORECASE)
_NATIVE_DISABLED = re.compile(r"not\s*starting\s*(client\s*transports|native\s*transport)", re.IGNORECASE)
_NATIVE_FAILED = re.compile(r"failed\s*to\s*bind\s*port", re.IGNORECASE)
_ENCRYPTED = re.compile(r"\(encrypted\)", re.IGNORECASE)

_RPC_BINDING = re.compile(r"binding\s*thrift\s*service\s*to.*/(.+):(\d+)", re.IGNORECASE)
_RPC_LISTENING = re.compile(r"listening\s*for\s*thrift\s*clients", re.IGNORECASE)
_RPC_DISABLED = re.compile(r"not\s*starting\s*rpc\s*server", re.IGNORECASE)
_RPC_FAILED = re.compile(r"unable\s*to\s*create\s*thrift\s*socket", re.IGNORECASE)


def _parse_address(text: str) -> Optional[ipaddress._BaseAddress]:
    host = text.strip().strip("[]")
    try:
        return ipaddress.ip_address(host)
    except ValueError:
        return None


class ReadinessCheck(abc.ABC):
    """One condition that must hold before the server counts as started."""

    def __call__(self, line: str) -> None:
        """Consume one line of process output."""

    @abc.abstractmethod
    def is_ready(self) -> bool:
        ...

    def is_failed(self) -> bool:
        return False

    def failure_message(self) -> str:
        return f"{type(self).__name__} failed"


class _TransportReadiness(ReadinessCheck):
    """Common state for log-driven transports."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.address: Optional[ipaddress._BaseAddress] = None
        self.port: Optional[int] = None
        self.ssl_port: Optional[int] = None
        self._started = False
        self._disabled = False
        self._failed = False

    @property
    def disabled(self) -> bool:
        with self._lock:
            return self._disabled

    def is_failed(self) -> bool:
        with self._lock:
            return self._failed


class NativeTransportReadiness(_TransportReadiness):
    """CQL native transport: ready once it logs its address and accepts a connection."""

    def __init__(self, *, probe_timeout: float = 0.5) -> None:
        super().__init__()
        self.probe_timeout = probe_timeout

    def __call__(self, line: str) -> None:
        with self._lock:
            match = _NATIVE_LISTENING.search(line)
            if match:
                address = _parse_address(match.group(1))
                port = int(match.group(2))
                if address is not None:
                    self.address = address
                if _ENCRYPTED.search(line):
                    self.ssl_port = port
                else:
                    self.port = port
                self._started = True
            elif _NATIVE_DISABLED.search(line):
                self._disabled = True
            elif _NATIVE_FAILED.search(line):
                self._failed = True

    def is_ready(self) -> bool:
        with self._lock:
            if self._disabled:
                return True
            if not self._started:
                return False
            address = self.address
            port = self.port if self.port is not None else self.ssl_port
        if address is None or port is None:
            return True
        return is_port_open(address, port, timeout=self.probe_timeout)

    def failure_message(self) -> str:
        return "Native transport could not be started (failed to bind port)"


class RpcTransportReadiness(_TransportReadiness):
    """Legacy Thrift RPC transport (Cassandra < 4.0)."""

    def __call__(self, line: str) -> None:
        with self._lock:
            binding = _RPC_BINDING.search(line)
            if binding:
                address = _parse_address(binding.group(1))
                if address is not None:
                    self.address = address
                self.port = int(binding.group(2))
            elif _RPC_LISTENING.search(line):
                self._started = True
            elif _RPC_DISABLED.search(line):
                self._disabled = True
            elif _RPC_FAILED.search(line):
                self._failed = True

    def is_ready(self) -> bool:
        with self._lock:
            return self._disabled or self._started

    def failure_message(self) -> str:
        return "RPC transport could not be started (unable to create thrift socket)"


class PortReadiness(ReadinessCheck):
    """Ready as soon as ``host:port`` accepts TCP connections."""

    def __init__(self, host: str, port: int, *, probe_timeout: float = 0.5) -> None:
        self.host = host
        self.port = port
        self.probe_timeout = probe_timeout

    def is_ready(self) -> bool:
        return is_port_open(self.host, self.port, timeout=self.probe_timeout)

    def __repr__(self) -> str:
        return f"PortReadiness({self.host}:{self.port})"


class LogMarkerReadiness(ReadinessCheck):
    """Ready once a line matching ``pattern`` has been logged."""

    def __init__(self, pattern: str) -> None:
        self.pattern = re.compile(pattern, re.IGNORECASE)
        self._seen = threading.Event()

    def __call__(self, line: str) -> None:
        if self.pattern.search(line):
            self._seen.set()

    def is_ready(self) -> bool:
        return self._seen.is_set()


class ReadinessMonitor:
    """Poll readiness checks until they all pass, the process dies, or time runs out."""

    def __init__(self, *, poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS) -> None:
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive (got {poll_interval})")
        self.poll_interval = poll_interval

    def await_ready(self, handle: ProcessHandle, timeout: float, checks: Sequence[ReadinessCheck]) -> None:
        """Block until every check is ready.

        Raises:
            ProcessExitedPrematurelyError: The process exited before it was ready.
            TransportStartupError: A transport reported that it could not start.
            StartupTimeoutError: ``timeout`` elapsed first; the caller kills the process.
            ThreadInterruptedError: The waiting thread was interrupted.
        """
        checks = list(checks)
        for check in checks:
            handle.output.attach(check)
        try:
            self._poll(handle, timeout, checks)
        finally:
            for check in checks:
                handle.output.detach(check)

    def _poll(self, handle: ProcessHandle, timeout: float, checks: List[ReadinessCheck]) -> None:
        deadline = time.monotonic() + timeout
        while True:
            self._raise_if_exited(handle)
            failed = [check for check in checks if check.is_failed()]
            if failed:
                raise TransportStartupError(
                    "; ".join(check.failure_message() for check in failed),
                    output=handle.output.lines(),
                    context={"pid": handle.pid},
                )
            if all(check.is_ready() for check in checks):
                logger.debug("%s (pid=%d) is ready", handle.name, handle.pid)
                return
            if time.monotonic() >= deadline:
                # Exiting right at the deadline still counts as an exit.
                self._raise_if_exited(handle)
                raise StartupTimeoutError(timeout, pid=handle.pid, output=handle.output.lines())
            interrupts.sleep(self.poll_interval)

    @staticmethod
    def _raise_if_exited(handle: ProcessHandle) -> None:
        exit_code = handle.exit_code
        if exit_code is not None:
            # Let the drainers deliver the last lines (usually the reason).
            handle.output.join(timeout=1.0)
            raise ProcessExitedPrematurelyError(exit_code, pid=handle.pid, output=handle.output.lines())


def default_checks(major_version: int) -> Iterable[ReadinessCheck]:
    checks: List[ReadinessCheck] = [NativeTransportReadiness()]
    if major_version < 4:
        checks.append(RpcTransportReadiness())
    return checks


__all__ = [
    "LogMarkerReadiness",
    "NativeTransportReadiness",
    "PortReadiness",
    "ReadinessCheck",
    "ReadinessMonitor",
    "RpcTransportReadiness",
    "default_checks",
]
