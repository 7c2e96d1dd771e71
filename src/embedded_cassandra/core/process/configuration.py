"""Prepare the server configuration for one launch.

The distribution's ``cassandra.yaml`` is never edited in place. Config
property overrides, random port allocation and seed rewriting are applied to
a copy written next to it (``conf/cassandra-embedded.yaml``, overwritten on
every launch), and the server is pointed at that copy with the
``cassandra.config`` system property.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Any, Dict, Mapping, MutableMapping, Optional
from urllib.parse import unquote, urlparse

from ..utils.io import read_yaml, write_yaml
from ..utils.merge import set_dotted
from ..utils.network import find_free_port
from ..version import Version

logger = logging.getLogger(__name__)

CONFIG_SYSTEM_PROPERTY = "cassandra.config"
DEFAULT_CONFIG_FILE = "conf/cassandra.yaml"
EFFECTIVE_CONFIG_FILE = "conf/cassandra-embedded.yaml"

# A value of 0 (or "0") for any of these keys is replaced by a free port.
PORT_CONFIG_PROPERTIES = (
    "native_transport_port",
    "storage_port",
    "ssl_storage_port",
    "rpc_port",
    "native_transport_port_ssl",
)
PORT_SYSTEM_PROPERTIES = (
    "cassandra.native_transport_port",
    "cassandra.storage_port",
    "cassandra.ssl_storage_port",
    "cassandra.rpc_port",
    "cassandra.jmx.remote.port",
    "cassandra.jmx.local.port",
    "com.sun.management.jmxremote.rmi.port",
)

DEFAULT_STORAGE_PORT = "7000"
DEFAULT_SSL_STORAGE_PORT = "7001"


@dataclass(frozen=True)
class ServerConfiguration:
    """The configuration file written for a launch and its contents."""

    path: Path
    properties: Dict[str, Any]
    system_properties: Dict[str, Optional[str]]


def normalize_value(value: Any) -> Any:
    """Convert paths and nested containers into YAML/system-property friendly values."""
    if isinstance(value, Mapping):
        return {str(k): normalize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [normalize_value(v) for v in value]
    if isinstance(value, PurePath):
        return str(value)
    return value


def _system_property_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = normalize_value(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def resolve_config_file(working_directory: Path, location: Optional[str]) -> Path:
    """Locate the source configuration: ``cassandra.config`` (URI or path) or the default file."""
    if location:
        parsed = urlparse(location)
        if parsed.scheme == "file":
            return Path(unquote(parsed.path))
        if parsed.scheme and len(parsed.scheme) > 1:
            raise ValueError(f"Unsupported {CONFIG_SYSTEM_PROPERTY} location: {location}")
        candidate = Path(location)
        return candidate if candidate.is_absolute() else working_directory / candidate
    return working_directory / DEFAULT_CONFIG_FILE


def set_property(target: MutableMapping[str, Any], name: str, value: Any) -> None:
    """Set a dotted config property, refusing to nest below a scalar value."""
    set_dotted(target, name, normalize_value(value))


def _allocate_port(target: MutableMapping[str, Any], name: str) -> None:
    if str(target.get(name, "")) == "0":
        port = find_free_port()
        logger.debug("Assigned free port %d to %s", port, name)
        target[name] = port if not isinstance(target.get(name), str) else str(port)


def allocate_ports(
    properties: MutableMapping[str, Any], system_properties: MutableMapping[str, Optional[str]]
) -> None:
    for name in PORT_SYSTEM_PROPERTIES:
        _allocate_port(system_properties, name)
    for name in PORT_CONFIG_PROPERTIES:
        _allocate_port(properties, name)


def rewrite_seeds(
    original: Mapping[str, Any],
    properties: MutableMapping[str, Any],
    system_properties: Mapping[str, Optional[str]],
) -> None:
    """Keep ``host:port`` seeds in step with a changed storage port."""
    old_storage = str(original.get("storage_port", DEFAULT_STORAGE_PORT))
    new_storage = system_properties.get("cassandra.storage_port") or str(properties.get("storage_port", old_storage))
    old_ssl = str(original.get("ssl_storage_port", DEFAULT_SSL_STORAGE_PORT))
    new_ssl = system_properties.get("cassandra.ssl_storage_port") or str(properties.get("ssl_storage_port", old_ssl))
    if old_storage == new_storage and old_ssl == new_ssl:
        return
    for provider in properties.get("seed_provider") or []:
        if not isinstance(provider, MutableMapping):
            continue
        for parameter in provider.get("parameters") or []:
            if not isinstance(parameter, MutableMapping) or parameter.get("seeds") is None:
                continue
            seeds = str(parameter["seeds"])
            if old_storage != new_storage:
                seeds = seeds.replace(f":{old_storage}", f":{new_storage}")
            if old_ssl != new_ssl:
                seeds = seeds.replace(f":{old_ssl}", f":{new_ssl}")
            parameter["seeds"] = seeds


def prepare_server_configuration(
    working_directory: Path,
    version: Version,
    config_properties: Mapping[str, Any],
    system_properties: Mapping[str, Any],
) -> ServerConfiguration:
    """Write the effective ``cassandra.yaml`` for this launch into ``conf/``."""
    sys_props: Dict[str, Optional[str]] = {
        str(name): _system_property_value(value) for name, value in system_properties.items()
    }
    source = resolve_config_file(working_directory, sys_props.get(CONFIG_SYSTEM_PROPERTY))
    original = read_yaml(source, default={}, raise_on_error=True)
    if not isinstance(original, dict):
        raise ValueError(f"{source} does not contain a YAML mapping")

    properties: Dict[str, Any] = copy.deepcopy(original)
    for name, value in config_properties.items():
        set_property(properties, str(name), value)

    allocate_ports(properties, sys_props)
    if version.major >= 4:
        rewrite_seeds(original, properties, sys_props)

    # One fixed file per working directory; a restart overwrites it.
    target = working_directory / EFFECTIVE_CONFIG_FILE
    write_yaml(target, properties)
    sys_props[CONFIG_SYSTEM_PROPERTY] = target.resolve().as_uri()
    logger.debug("Server configuration written to %s", target)
    return ServerConfiguration(path=target, properties=properties, system_properties=sys_props)


__all__ = [
    "CONFIG_SYSTEM_PROPERTY",
    "EFFECTIVE_CONFIG_FILE",
    "PORT_CONFIG_PROPERTIES",
    "PORT_SYSTEM_PROPERTIES",
    "ServerConfiguration",
    "allocate_ports",
    "normalize_value",
    "prepare_server_configuration",
    "resolve_config_file",
    "rewrite_seeds",
    "set_property",
]
