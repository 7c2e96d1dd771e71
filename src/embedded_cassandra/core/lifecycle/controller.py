"""Start/stop state machine for one embedded Cassandra instance.

``start()`` runs the pipeline artifact -> working directory -> launch ->
readiness; ``stop()`` terminates the process and applies the destroyer.
Concurrent callers are serialized through one :class:`threading.Condition`:
a caller that finds another thread mid-transition waits for it to finish and
then re-evaluates the state instead of racing it.

Interruption (``KeyboardInterrupt``, or :func:`interrupts.interrupt` from
another thread) kills the child process, leaves the thread's interrupt flag
set and raises :class:`LifecycleInterruptedError`, so callers can tell an
interrupted start apart from a failed one.
"""
from __future__ import annotations

import logging
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Union

from ..artifact import ArtifactProvider
from ..config import LifecycleConfig
from ..exceptions import (
    CassandraStartError,
    CassandraStopError,
    EmbeddedCassandraError,
    IllegalStateError,
    LifecycleInterruptedError,
    ThreadInterruptedError,
)
from ..process import (
    LaunchSpec,
    NativeTransportReadiness,
    ProcessHandle,
    ProcessLauncher,
    ReadinessCheck,
    ReadinessMonitor,
    RpcTransportReadiness,
    default_checks,
)
from ..utils import interrupts
from ..version import Version
from ..working_directory import (
    DEFAULT_DELETE_PATHS,
    WorkingDirectoryCustomizer,
    WorkingDirectoryDestroyer,
    WorkingDirectoryInitializer,
    delete_only,
)
from .settings import (
    Settings,
    resolve_address,
    resolve_native_port,
    resolve_rpc_port,
    resolve_ssl_port,
)
from .shutdown import ShutdownHook
from .state import IN_FLIGHT_STATES, State, can_transition

logger = logging.getLogger(__name__)

_WAIT_SLICE_SECONDS = 0.05

ReadinessChecksFactory = Callable[[Version], Iterable[ReadinessCheck]]
_INTERRUPTS = (ThreadInterruptedError, KeyboardInterrupt)


def _default_readiness_checks(version: Version) -> Iterable[ReadinessCheck]:
    return default_checks(version.major)


class LifecycleController:
    """One Cassandra instance: ``start()``, ``stop()``, ``get_settings()``."""

    def __init__(
        self,
        name: str,
        version: Union[Version, str, None] = None,
        *,
        artifact_provider: Optional[Any] = None,
        initializer: Optional[WorkingDirectoryInitializer] = None,
        launcher: Optional[ProcessLauncher] = None,
        monitor: Optional[ReadinessMonitor] = None,
        working_directory: Optional[Path] = None,
        customizers: Sequence[WorkingDirectoryCustomizer] = (),
        destroyer: Optional[WorkingDirectoryDestroyer] = None,
        config_properties: Optional[Mapping[str, Any]] = None,
        system_properties: Optional[Mapping[str, Any]] = None,
        environment_variables: Optional[Mapping[str, Any]] = None,
        jvm_options: Sequence[str] = (),
        startup_timeout: Optional[float] = None,
        stop_timeout: Optional[float] = None,
        kill_timeout: Optional[float] = None,
        register_shutdown_hook: Optional[bool] = None,
        readiness_checks: Optional[ReadinessChecksFactory] = None,
        config: Optional[LifecycleConfig] = None,
    ) -> None:
        cfg = config or LifecycleConfig()
        if version is None:
            version = cfg.default_version
        self.name = name
        self.version = version if isinstance(version, Version) else Version.parse(version)
        self.artifact_provider = artifact_provider or ArtifactProvider()
        self.initializer = initializer or WorkingDirectoryInitializer()
        self.launcher = launcher or ProcessLauncher()
        self.monitor = monitor or ReadinessMonitor(poll_interval=cfg.readiness_poll_interval_seconds)
        self.customizers: List[WorkingDirectoryCustomizer] = list(customizers)
        self.destroyer: WorkingDirectoryDestroyer = destroyer or delete_only(*DEFAULT_DELETE_PATHS)
        self.config_properties = dict(config_properties or {})
        self.system_properties = dict(system_properties or {})
        self.environment_variables = dict(environment_variables or {})
        self.jvm_options = list(jvm_options)
        self.startup_timeout = cfg.startup_timeout_seconds if startup_timeout is None else float(startup_timeout)
        self.stop_timeout = cfg.stop_timeout_seconds if stop_timeout is None else float(stop_timeout)
        self.kill_timeout = cfg.kill_timeout_seconds if kill_timeout is None else float(kill_timeout)
        if register_shutdown_hook is None:
            register_shutdown_hook = cfg.register_shutdown_hook
        self.register_shutdown_hook = bool(register_shutdown_hook)
        self.readiness_checks = readiness_checks or _default_readiness_checks

        self._working_directory = Path(working_directory).expanduser() if working_directory else None
        self._condition = threading.Condition(threading.Lock())
        self._state = State.NEW
        self._handle: Optional[ProcessHandle] = None
        self._settings: Optional[Settings] = None
        self.shutdown_hook = ShutdownHook(self._stop_at_exit, name=f"{name}-shutdown")

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def state(self) -> State:
        with self._condition:
            return self._state

    @property
    def working_directory(self) -> Optional[Path]:
        return self._working_directory

    def is_running(self) -> bool:
        with self._condition:
            handle = self._handle
            started = self._state is State.STARTED
        return started and handle is not None and handle.is_alive()

    def get_settings(self) -> Settings:
        """Settings of the running instance.

        Raises:
            IllegalStateError: The instance is not STARTED.
        """
        with self._condition:
            if self._state is not State.STARTED or self._settings is None:
                raise IllegalStateError(
                    f"{self.name} is not started (state: {self._state})",
                    context={"name": self.name, "state": str(self._state)},
                )
            return self._settings

    def _transition(self, target: State) -> None:
        """Single mutation point for the state; the condition must be held."""
        current = self._state
        if current is target:
            return
        if not can_transition(current, target):
            raise IllegalStateError(
                f"{self.name}: cannot go from {current} to {target}",
                context={"name": self.name, "from": str(current), "to": str(target)},
            )
        logger.debug("%s: %s -> %s", self.name, current, target)
        self._state = target
        self._condition.notify_all()

    def _await_idle(self) -> None:
        """Wait (holding the condition) until no other thread is mid-transition."""
        while self._state in IN_FLIGHT_STATES:
            self._condition.wait(_WAIT_SLICE_SECONDS)
            try:
                interrupts.check_interrupted()
            except ThreadInterruptedError as exc:
                interrupts.interrupt(threading.current_thread())
                raise LifecycleInterruptedError(
                    f"Interrupted while waiting for {self.name} to leave {self._state}",
                    context={"name": self.name, "state": str(self._state)},
                ) from exc

    # ------------------------------------------------------------------
    # start
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Start the instance; a no-op when it is already started.

        Raises:
            LifecycleInterruptedError: The calling thread was interrupted.
            IllegalStateError: A previous stop failed; call ``stop()`` first.
            EmbeddedCassandraError: Any other failure (``CassandraStartError``
                wraps errors from outside this package).
        """
        with self._condition:
            self._await_idle()
            if self._state is State.STARTED:
                return
            self._transition(State.STARTING)
            self._settings = None

        if self.register_shutdown_hook:
            self.shutdown_hook.register()

        try:
            settings = self._do_start()
        except _INTERRUPTS as exc:
            self._kill_quietly()
            interrupts.interrupt(threading.current_thread())
            with self._condition:
                self._transition(State.START_INTERRUPTED)
            raise LifecycleInterruptedError(
                f"{self.name} start was interrupted",
                context={"name": self.name, "version": str(self.version)},
            ) from exc
        except Exception as exc:
            logger.error("%s could not be started: %s", self.name, exc)
            self._kill_quietly()
            self._destroy_quietly()
            with self._condition:
                self._transition(State.START_FAILED)
            if isinstance(exc, EmbeddedCassandraError):
                raise
            raise CassandraStartError(
                f"Unable to start {self.name}: {exc}",
                context={"name": self.name, "version": str(self.version)},
            ) from exc

        with self._condition:
            self._settings = settings
            self._transition(State.STARTED)
        logger.info(
            "Apache Cassandra %s (%s) has been started and listens on %s:%s",
            self.version,
            self.name,
            settings.address,
            settings.port,
        )

    def _resolve_working_directory(self) -> Path:
        if self._working_directory is None:
            self._working_directory = Path(tempfile.mkdtemp(prefix=f"apache-cassandra-{self.version}-"))
        return self._working_directory

    def _do_start(self) -> Settings:
        logger.info("Starting Apache Cassandra %s (%s)", self.version, self.name)
        archive = self.artifact_provider.resolve(self.version)
        interrupts.check_interrupted()
        working_directory = self._resolve_working_directory()
        self.initializer.initialize(archive, working_directory, self.version, self.customizers)
        interrupts.check_interrupted()
        spec = self.launcher.prepare(
            self.name,
            working_directory,
            self.version,
            config_properties=self.config_properties,
            system_properties=self.system_properties,
            environment_variables=self.environment_variables,
            jvm_options=self.jvm_options,
        )
        self._handle = self.launcher.launch(spec)
        checks = list(self.readiness_checks(self.version))
        self.monitor.await_ready(self._handle, self.startup_timeout, checks)
        return self._build_settings(spec, checks)

    def _build_settings(self, spec: LaunchSpec, checks: Sequence[ReadinessCheck]) -> Settings:
        native = next((c for c in checks if isinstance(c, NativeTransportReadiness)), None)
        rpc = next((c for c in checks if isinstance(c, RpcTransportReadiness)), None)
        properties = spec.config_properties
        system_properties = spec.system_properties

        address = native.address if native is not None and native.address is not None else None
        if address is None:
            address = resolve_address(properties)
        if native is not None and native.disabled:
            port, ssl_port = None, None
        else:
            port = native.port if native is not None and native.port is not None else None
            if port is None:
                port = resolve_native_port(properties, system_properties)
            ssl_port = native.ssl_port if native is not None and native.ssl_port is not None else None
            if ssl_port is None:
                ssl_port = resolve_ssl_port(properties)
        if rpc is not None and rpc.disabled:
            rpc_port = None
        elif rpc is not None and rpc.port is not None:
            rpc_port = rpc.port
        else:
            rpc_port = resolve_rpc_port(self.version, properties, system_properties)

        return Settings(
            name=self.name,
            version=self.version,
            address=address,
            port=port,
            ssl_port=ssl_port,
            rpc_port=rpc_port,
            working_directory=spec.working_directory,
            jvm_options=list(spec.jvm_options),
            system_properties=system_properties,
            environment_variables=dict(spec.environment),
            config_properties=properties,
        )

    # ------------------------------------------------------------------
    # stop
    # ------------------------------------------------------------------
    def stop(self) -> None:
        """Stop the instance; a no-op when it is NEW or already STOPPED.

        Raises:
            LifecycleInterruptedError: The calling thread was interrupted.
            CassandraStopError: The process could not be killed.
        """
        with self._condition:
            self._await_idle()
            if self._state in (State.NEW, State.STOPPED):
                return
            self._transition(State.STOPPING)
            self._settings = None

        try:
            self._do_stop()
        except _INTERRUPTS as exc:
            self._kill_quietly()
            interrupts.interrupt(threading.current_thread())
            with self._condition:
                self._transition(State.STOP_INTERRUPTED)
            raise LifecycleInterruptedError(
                f"{self.name} stop was interrupted",
                context={"name": self.name, "version": str(self.version)},
            ) from exc
        except Exception as exc:
            with self._condition:
                self._transition(State.STOP_FAILED)
            if isinstance(exc, CassandraStopError):
                raise
            raise CassandraStopError(
                f"Unable to stop {self.name}: {exc}",
                context={"name": self.name, "version": str(self.version)},
            ) from exc

        with self._condition:
            self._transition(State.STOPPED)
        self.shutdown_hook.unregister()
        logger.info("Apache Cassandra %s (%s) has been stopped", self.version, self.name)

    def _do_stop(self) -> None:
        handle = self._handle
        if handle is not None:
            logger.info("Stopping Apache Cassandra %s (%s)", self.version, self.name)
            exit_code = handle.terminate(self.stop_timeout, kill_timeout=self.kill_timeout)
            if handle.is_alive():
                raise CassandraStopError(
                    f"{self.name} (pid={handle.pid}) is still alive after SIGKILL",
                    context={"name": self.name, "pid": handle.pid},
                )
            logger.debug("%s (pid=%d) exited with code %s", self.name, handle.pid, exit_code)
            self._handle = None
        self._destroy_quietly()

    def _stop_at_exit(self) -> None:
        # atexit runs on the main thread after it has already finished; an
        # instance mid-transition there belongs to a daemon thread.
        if self.state in IN_FLIGHT_STATES:
            logger.warning("%s is %s at interpreter exit; killing it", self.name, self.state)
            self._kill_quietly()
            return
        self.stop()

    # ------------------------------------------------------------------
    # cleanup
    # ------------------------------------------------------------------
    def _kill_quietly(self) -> None:
        handle = self._handle
        if handle is None:
            return
        try:
            handle.kill(self.kill_timeout)
        except Exception as exc:
            logger.warning("cleanup failed: could not kill %s (pid=%d): %s", self.name, handle.pid, exc)
            return
        if not handle.is_alive():
            self._handle = None

    def _destroy_quietly(self) -> None:
        working_directory = self._working_directory
        if working_directory is None:
            return
        try:
            self.destroyer(working_directory, self.version)
        except Exception as exc:
            logger.warning("cleanup failed: could not clean up working directory %s: %s", working_directory, exc)

    # ------------------------------------------------------------------
    # context manager
    # ------------------------------------------------------------------
    def __enter__(self) -> "LifecycleController":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def __repr__(self) -> str:
        return f"LifecycleController(name={self.name!r}, version={str(self.version)!r}, state={self._state})"


__all__ = ["LifecycleController", "ReadinessChecksFactory"]
