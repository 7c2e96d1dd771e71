"""Read-only view of a started Cassandra instance."""
from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from ..version import Version

Address = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

DEFAULT_NATIVE_TRANSPORT_PORT = 9042
DEFAULT_RPC_PORT = 9160
LOOPBACK = ipaddress.ip_address("127.0.0.1")

REDACTED_PROPERTIES = ("client_encryption_options", "server_encryption_options")
_REDACTED = "***"


def _redact(properties: Mapping[str, Any]) -> Dict[str, Any]:
    redacted = dict(properties)
    for key in REDACTED_PROPERTIES:
        if key in redacted:
            redacted[key] = _REDACTED
    return redacted


@dataclass(frozen=True)
class Settings:
    name: str
    version: Version
    address: Address
    port: Optional[int]
    ssl_port: Optional[int]
    rpc_port: Optional[int]
    working_directory: Path
    jvm_options: List[str] = field(default_factory=list)
    system_properties: Dict[str, Optional[str]] = field(default_factory=dict)
    environment_variables: Dict[str, str] = field(default_factory=dict)
    config_properties: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly summary; encryption options are redacted."""
        return {
            "name": self.name,
            "version": str(self.version),
            "address": str(self.address),
            "port": self.port,
            "ssl_port": self.ssl_port,
            "rpc_port": self.rpc_port,
            "working_directory": str(self.working_directory),
        }

    def __repr__(self) -> str:
        return (
            f"Settings(name={self.name!r}, version={str(self.version)!r}, address={str(self.address)!r}, "
            f"port={self.port!r}, ssl_port={self.ssl_port!r}, rpc_port={self.rpc_port!r}, "
            f"working_directory={str(self.working_directory)!r}, jvm_options={self.jvm_options!r}, "
            f"system_properties={self.system_properties!r}, "
            f"environment_variables={self.environment_variables!r}, "
            f"config_properties={_redact(self.config_properties)!r})"
        )


def _as_port(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_address(value: Any) -> Optional[Address]:
    if value is None:
        return None
    try:
        return ipaddress.ip_address(str(value).strip("[]"))
    except ValueError:
        return None


def resolve_native_port(
    config_properties: Mapping[str, Any], system_properties: Mapping[str, Optional[str]]
) -> int:
    port = _as_port(system_properties.get("cassandra.native_transport_port"))
    if port is None:
        port = _as_port(config_properties.get("native_transport_port"))
    return DEFAULT_NATIVE_TRANSPORT_PORT if port is None else port


def resolve_ssl_port(config_properties: Mapping[str, Any]) -> Optional[int]:
    return _as_port(config_properties.get("native_transport_port_ssl"))


def resolve_rpc_port(
    version: Version, config_properties: Mapping[str, Any], system_properties: Mapping[str, Optional[str]]
) -> Optional[int]:
    """Thrift was removed in 4.0; older versions default to 9160."""
    if version.major >= 4:
        return None
    port = _as_port(system_properties.get("cassandra.rpc_port"))
    if port is None:
        port = _as_port(config_properties.get("rpc_port"))
    return DEFAULT_RPC_PORT if port is None else port


def resolve_address(config_properties: Mapping[str, Any]) -> Address:
    for key in ("rpc_address", "listen_address"):
        address = _as_address(config_properties.get(key))
        if address is not None:
            return address
    return LOOPBACK


__all__ = [
    "DEFAULT_NATIVE_TRANSPORT_PORT",
    "DEFAULT_RPC_PORT",
    "Settings",
    "resolve_address",
    "resolve_native_port",
    "resolve_rpc_port",
    "resolve_ssl_port",
]
