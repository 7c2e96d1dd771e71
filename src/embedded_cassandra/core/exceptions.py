from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence, Tuple


class EmbeddedCassandraError(Exception):
    """Base exception for embedded Cassandra."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class ConfigurationError(EmbeddedCassandraError, ValueError):
    """Raised when configuration is missing, malformed, or fails validation."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        EmbeddedCassandraError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class InvalidVersionFormatError(EmbeddedCassandraError, ValueError):
    """Raised when a version string cannot be parsed."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        EmbeddedCassandraError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class IllegalStateError(EmbeddedCassandraError, RuntimeError):
    """Raised when an operation is not permitted in the current lifecycle state."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        EmbeddedCassandraError.__init__(self, message, context=context)
        RuntimeError.__init__(self, message)


class LockTimeoutError(EmbeddedCassandraError, TimeoutError):
    """Raised when an OS file lock cannot be acquired within timeout."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        EmbeddedCassandraError.__init__(self, message, context=context)
        TimeoutError.__init__(self, message)


# ---------------------------------------------------------------------------
# Artifact download
# ---------------------------------------------------------------------------


class DownloadError(EmbeddedCassandraError):
    """A single candidate location could not be downloaded."""

    def __init__(
        self,
        message: str = "",
        *,
        url: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if url is not None:
            ctx.setdefault("url", url)
        super().__init__(message, context=ctx)
        self.url = url


class HttpStatusError(DownloadError):
    """The server answered with a status outside of 2xx and the handled redirects."""

    def __init__(self, url: str, status_code: int, reason: str = "") -> None:
        message = f"HTTP {status_code} {reason}".rstrip() + f" for URL: {url}"
        super().__init__(message, url=url, context={"status_code": status_code, "reason": reason})
        self.status_code = status_code
        self.reason = reason


class TooManyRedirectsError(DownloadError):
    """The redirect chain exceeded the configured number of hops."""

    def __init__(self, url: str, max_redirects: int) -> None:
        super().__init__(
            f"Too many redirects ({max_redirects}) for URL: {url}",
            url=url,
            context={"max_redirects": max_redirects},
        )
        self.max_redirects = max_redirects


class IncompleteDownloadError(DownloadError):
    """Fewer (or more) bytes were written than the declared content length."""

    def __init__(self, url: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Incomplete download from {url}: expected {expected} bytes, got {actual}",
            url=url,
            context={"expected_bytes": expected, "actual_bytes": actual},
        )
        self.expected = expected
        self.actual = actual


class ChecksumMismatchError(DownloadError):
    """The downloaded archive does not match its published checksum."""

    def __init__(self, url: str, algorithm: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Checksum ({algorithm}) mismatch for {url}: expected {expected}, got {actual}",
            url=url,
            context={"algorithm": algorithm, "expected": expected, "actual": actual},
        )
        self.algorithm = algorithm


class ArtifactUnavailableError(EmbeddedCassandraError):
    """Every candidate location for an artifact failed.

    ``causes`` keeps one ``(location, exception)`` pair per candidate, in the
    order the candidates were tried.
    """

    def __init__(self, version: str, causes: Sequence[Tuple[str, BaseException]]) -> None:
        self.causes: List[Tuple[str, BaseException]] = list(causes)
        details = "; ".join(f"{url}: {exc}" for url, exc in self.causes) or "no candidate locations"
        super().__init__(
            f"Cassandra {version} could not be downloaded ({details})",
            context={
                "version": version,
                "candidates": [
                    {"url": url, "error": type(exc).__name__, "message": str(exc)}
                    for url, exc in self.causes
                ],
            },
        )


# ---------------------------------------------------------------------------
# Working directory
# ---------------------------------------------------------------------------


class WorkingDirectoryInitializationError(EmbeddedCassandraError):
    """Extraction or a customizer failed while preparing the working directory."""


# ---------------------------------------------------------------------------
# Startup / readiness
# ---------------------------------------------------------------------------


class StartupError(EmbeddedCassandraError):
    """Base class for readiness failures of a launched process."""

    def __init__(
        self,
        message: str = "",
        *,
        output: Sequence[str] = (),
        context: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message, context=context)
        self.output: List[str] = list(output)


class StartupTimeoutError(StartupError, TimeoutError):
    """The process did not become ready within the startup timeout."""

    def __init__(self, timeout: float, *, pid: int | None = None, output: Sequence[str] = ()) -> None:
        message = f"Cassandra has not been started within {timeout:g}s"
        StartupError.__init__(self, message, output=output, context={"timeout_seconds": timeout, "pid": pid})
        TimeoutError.__init__(self, message)
        self.timeout = timeout


class ProcessExitedPrematurelyError(StartupError):
    """The process terminated on its own before it became ready."""

    def __init__(self, exit_code: int | None, *, pid: int | None = None, output: Sequence[str] = ()) -> None:
        tail = "\n".join(list(output)[-20:])
        message = f"Cassandra process (pid={pid}) exited with code {exit_code} before it became ready"
        if tail:
            message = f"{message}. Last output:\n{tail}"
        super().__init__(message, output=output, context={"exit_code": exit_code, "pid": pid})
        self.exit_code = exit_code


class TransportStartupError(StartupError):
    """A client transport reported that it could not start (e.g. the port is in use)."""


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class ThreadInterruptedError(EmbeddedCassandraError):
    """A blocking step observed that its thread was interrupted."""


class LifecycleInterruptedError(EmbeddedCassandraError):
    """start() or stop() was interrupted before it could complete."""


class CassandraStartError(EmbeddedCassandraError):
    """Cassandra could not be started."""


class CassandraStopError(EmbeddedCassandraError):
    """Cassandra could not be stopped cleanly."""


__all__ = [
    "EmbeddedCassandraError",
    "ConfigurationError",
    "InvalidVersionFormatError",
    "IllegalStateError",
    "LockTimeoutError",
    "DownloadError",
    "HttpStatusError",
    "TooManyRedirectsError",
    "IncompleteDownloadError",
    "ChecksumMismatchError",
    "ArtifactUnavailableError",
    "WorkingDirectoryInitializationError",
    "StartupError",
    "StartupTimeoutError",
    "ProcessExitedPrematurelyError",
    "TransportStartupError",
    "ThreadInterruptedError",
    "LifecycleInterruptedError",
    "CassandraStartError",
    "CassandraStopError",
]
