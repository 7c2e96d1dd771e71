"""Launching the server process and waiting for it to become ready."""
from __future__ import annotations

from .configuration import ServerConfiguration, prepare_server_configuration
from .launcher import JVM_EXTRA_OPTS, LaunchSpec, ProcessHandle, ProcessLauncher, build_command
from .output import PROCESS_LOGGER_PREFIX, ProcessOutput
from .readiness import (
    LogMarkerReadiness,
    NativeTransportReadiness,
    PortReadiness,
    ReadinessCheck,
    ReadinessMonitor,
    RpcTransportReadiness,
    default_checks,
)

__all__ = [
    "JVM_EXTRA_OPTS",
    "LaunchSpec",
    "LogMarkerReadiness",
    "NativeTransportReadiness",
    "PROCESS_LOGGER_PREFIX",
    "PortReadiness",
    "ProcessHandle",
    "ProcessLauncher",
    "ProcessOutput",
    "ReadinessCheck",
    "ReadinessMonitor",
    "RpcTransportReadiness",
    "ServerConfiguration",
    "build_command",
    "default_checks",
    "prepare_server_configuration",
]
