"""Start and stop the Cassandra server process."""
from __future__ import annotations

import logging
import os
import signal
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import psutil

from ..config import ProcessConfig
from ..utils import interrupts
from ..utils.io import make_executable
from ..version import Version
from .configuration import ServerConfiguration, prepare_server_configuration
from .output import ProcessOutput

logger = logging.getLogger(__name__)

JVM_EXTRA_OPTS = "JVM_EXTRA_OPTS"
_WAIT_SLICE_SECONDS = 0.05
_RUN_AS_ROOT_SINCE = Version.parse("3.1")


def _popen_kwargs() -> dict[str, Any]:
    if os.name == "posix":
        return {"start_new_session": True}
    if os.name == "nt":
        creationflags = getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", None)
        if isinstance(creationflags, int):
            return {"creationflags": creationflags}
    return {}


def build_command(working_directory: Path, version: Version) -> List[str]:
    """``bin/cassandra [-R] -f``; ``-R`` (allow root) exists after 3.1."""
    executable = working_directory / "bin" / "cassandra"
    command = [str(executable)]
    if version > _RUN_AS_ROOT_SINCE:
        command.append("-R")
    command.append("-f")
    return command


def build_jvm_extra_opts(jvm_options: Sequence[str], system_properties: Mapping[str, Optional[str]]) -> str:
    opts = list(jvm_options)
    for name, value in system_properties.items():
        opts.append(f"-D{name}" if value is None else f"-D{name}={value}")
    return " ".join(opts)


@dataclass(frozen=True)
class LaunchSpec:
    """Everything needed to spawn one server process."""

    name: str
    version: Version
    working_directory: Path
    command: List[str]
    environment: Dict[str, str]
    jvm_options: List[str] = field(default_factory=list)
    configuration: Optional[ServerConfiguration] = None

    @property
    def system_properties(self) -> Dict[str, Optional[str]]:
        return dict(self.configuration.system_properties) if self.configuration else {}

    @property
    def config_properties(self) -> Dict[str, Any]:
        return dict(self.configuration.properties) if self.configuration else {}


class ProcessHandle:
    """A running server process plus its output drainer."""

    def __init__(self, name: str, process: subprocess.Popen, output: ProcessOutput) -> None:
        self.name = name
        self.process = process
        self.output = output

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def exit_code(self) -> Optional[int]:
        return self.process.poll()

    def is_alive(self) -> bool:
        return self.process.poll() is None

    def wait(self, timeout: float) -> Optional[int]:
        """Wait up to ``timeout`` seconds for the process to exit; interruptible."""
        deadline = time.monotonic() + max(timeout, 0.0)
        while True:
            remaining = deadline - time.monotonic()
            try:
                return self.process.wait(timeout=max(min(_WAIT_SLICE_SECONDS, remaining), 0.0))
            except subprocess.TimeoutExpired:
                if remaining <= 0:
                    return None
            interrupts.check_interrupted()

    def _signal_group(self, sig: int) -> None:
        if os.name == "posix":
            try:
                os.killpg(self.pid, sig)
                return
            except (ProcessLookupError, PermissionError):
                pass
        try:
            self.process.send_signal(sig)
        except ProcessLookupError:
            pass

    def _descendants(self) -> List[psutil.Process]:
        try:
            return psutil.Process(self.pid).children(recursive=True)
        except psutil.Error:
            return []

    def kill(self, timeout: float = 10.0) -> Optional[int]:
        """SIGKILL the process and everything it spawned, then wait for it."""
        if not self.is_alive():
            return self.exit_code
        descendants = self._descendants()
        logger.debug("Killing %s (pid=%d) and %d descendant(s)", self.name, self.pid, len(descendants))
        self._signal_group(signal.SIGKILL)
        for child in descendants:
            try:
                child.kill()
            except psutil.Error:
                pass
        exit_code = self.wait(timeout)
        self.output.join(timeout=1.0)
        return exit_code

    def terminate(self, timeout: float = 10.0, *, kill_timeout: float = 10.0) -> Optional[int]:
        """Ask the server to shut down (SIGINT), escalating to SIGKILL after ``timeout``.

        Returns:
            The exit code, or None if the process survived SIGKILL as well.
        """
        if not self.is_alive():
            return self.exit_code
        logger.debug("Sending SIGINT to %s (pid=%d)", self.name, self.pid)
        self._signal_group(signal.SIGINT)
        exit_code = self.wait(timeout)
        if exit_code is not None:
            self.output.join(timeout=1.0)
            return exit_code
        logger.warning("%s (pid=%d) did not stop within %gs; killing it", self.name, self.pid, timeout)
        return self.kill(kill_timeout)

    def __repr__(self) -> str:
        return f"ProcessHandle(name={self.name!r}, pid={self.pid})"


class ProcessLauncher:
    """Build the launch command/environment and spawn the server."""

    def __init__(self, *, output_buffer_lines: Optional[int] = None, config: Optional[ProcessConfig] = None) -> None:
        if output_buffer_lines is None:
            output_buffer_lines = (config or ProcessConfig()).output_buffer_lines
        self.output_buffer_lines = output_buffer_lines

    def prepare(
        self,
        name: str,
        working_directory: Path,
        version: Version,
        *,
        config_properties: Mapping[str, Any] | None = None,
        system_properties: Mapping[str, Any] | None = None,
        environment_variables: Mapping[str, Any] | None = None,
        jvm_options: Sequence[str] = (),
    ) -> LaunchSpec:
        """Write the effective server configuration and assemble the launch spec."""
        working_directory = Path(working_directory)
        configuration = prepare_server_configuration(
            working_directory, version, config_properties or {}, system_properties or {}
        )
        env = {str(k): ("" if v is None else str(v)) for k, v in (environment_variables or {}).items()}
        jvm_extra_opts = build_jvm_extra_opts(jvm_options, configuration.system_properties)
        if env.get(JVM_EXTRA_OPTS):
            jvm_extra_opts = f"{env[JVM_EXTRA_OPTS]} {jvm_extra_opts}".strip()
        env[JVM_EXTRA_OPTS] = jvm_extra_opts
        return LaunchSpec(
            name=name,
            version=version,
            working_directory=working_directory,
            command=build_command(working_directory, version),
            environment=env,
            jvm_options=list(jvm_options),
            configuration=configuration,
        )

    def launch(self, spec: LaunchSpec) -> ProcessHandle:
        """Spawn the process described by ``spec`` and start draining its output."""
        executable = Path(spec.command[0])
        if executable.exists():
            make_executable(executable)
        env = dict(os.environ)
        env.update(spec.environment)
        logger.info("Starting %s: %s", spec.name, " ".join(spec.command))
        process = subprocess.Popen(
            spec.command,
            cwd=str(spec.working_directory),
            env=env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            **_popen_kwargs(),
        )
        output = ProcessOutput(spec.name, max_lines=self.output_buffer_lines)
        output.start(process.stdout, process.stderr)
        handle = ProcessHandle(spec.name, process, output)
        logger.info("%s has been started (pid=%d)", spec.name, handle.pid)
        return handle


__all__ = [
    "JVM_EXTRA_OPTS",
    "LaunchSpec",
    "ProcessHandle",
    "ProcessLauncher",
    "build_command",
    "build_jvm_extra_opts",
]
