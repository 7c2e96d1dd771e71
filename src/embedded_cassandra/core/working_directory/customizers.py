"""Working-directory customizers.

A customizer is any callable ``(working_directory, version) -> None`` that
adds or rewrites files after the distribution has been copied. Applying the
same customizers twice must leave the same bytes on disk.
"""
from __future__ import annotations

import filecmp
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional

from ..utils.io import ensure_parent_dir, read_yaml, write_yaml
from ..utils.merge import set_dotted
from .paths import resolve_inside

if TYPE_CHECKING:
    from ..version import Version

logger = logging.getLogger(__name__)

WorkingDirectoryCustomizer = Callable[[Path, "Version"], None]

DEFAULT_CONFIG_FILE = "conf/cassandra.yaml"


@dataclass(frozen=True)
class AddResource:
    """Copy ``source`` to ``target`` (relative to the working directory)."""

    source: Path
    target: str

    def __call__(self, working_directory: Path, version: "Version") -> None:
        source = Path(self.source)
        if not source.is_file():
            raise FileNotFoundError(f"Resource {source} does not exist or is not a file")
        dest = resolve_inside(working_directory, self.target)
        if dest.is_dir():
            raise IsADirectoryError(f"Cannot replace directory {dest} with resource {source}")
        if dest.exists() and filecmp.cmp(source, dest, shallow=False):
            return
        ensure_parent_dir(dest)
        shutil.copyfile(source, dest)
        logger.debug("Copied %s to %s", source, dest)


def add_resource(source: Path, target: str) -> AddResource:
    return AddResource(Path(source), str(target))


def add_to_classpath(jar: Path) -> AddResource:
    """Make ``jar`` available to the server by copying it into ``lib/``."""
    jar = Path(jar)
    return AddResource(jar, f"lib/{jar.name}")


def add_credentials(source: Path, name: Optional[str] = None) -> AddResource:
    """Copy a keystore/truststore/credentials file into ``conf/``."""
    source = Path(source)
    return AddResource(source, f"conf/{name or source.name}")


@dataclass(frozen=True)
class ConfigPropertiesCustomizer:
    """Write ``properties`` into a YAML file; dotted names address nested keys."""

    properties: Mapping[str, Any] = field(default_factory=dict)
    config_file: str = DEFAULT_CONFIG_FILE

    def __call__(self, working_directory: Path, version: "Version") -> None:
        path = resolve_inside(working_directory, self.config_file)
        data = read_yaml(path, default={}, raise_on_error=True) if path.exists() else {}
        if not isinstance(data, dict):
            raise ValueError(f"{path} does not contain a YAML mapping")
        updated: Dict[str, Any] = dict(data)
        for name, value in self.properties.items():
            set_dotted(updated, name, value)
        write_yaml(path, updated)


def set_config_properties(
    properties: Mapping[str, Any], config_file: str = DEFAULT_CONFIG_FILE
) -> ConfigPropertiesCustomizer:
    return ConfigPropertiesCustomizer(dict(properties), config_file)


__all__ = [
    "AddResource",
    "ConfigPropertiesCustomizer",
    "DEFAULT_CONFIG_FILE",
    "WorkingDirectoryCustomizer",
    "add_credentials",
    "add_resource",
    "add_to_classpath",
    "set_config_properties",
]
