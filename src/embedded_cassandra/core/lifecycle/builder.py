"""Fluent construction of :class:`LifecycleController` instances.

Example:
    >>> cassandra = (
    ...     CassandraBuilder()
    ...     .version("4.1.3")
    ...     .add_config_property("native_transport_port", 0)
    ...     .add_working_directory_customizer(add_to_classpath(Path("udf.jar")))
    ...     .build()
    ... )
    >>> with cassandra:
    ...     settings = cassandra.get_settings()
"""
from __future__ import annotations

import itertools
import threading
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from ..version import Version
from ..working_directory import WorkingDirectoryCustomizer, WorkingDirectoryDestroyer, set_config_properties
from .controller import LifecycleController, ReadinessChecksFactory
from .seeds import simple_seed_provider

_NAME_COUNTER = itertools.count()
_NAME_LOCK = threading.Lock()


def _next_name() -> str:
    with _NAME_LOCK:
        return f"cassandra-{next(_NAME_COUNTER)}"


class CassandraBuilder:
    """Collects instance options; ``build()`` may be called more than once."""

    def __init__(self) -> None:
        self._name: Optional[str] = None
        self._version: Union[Version, str, None] = None
        self._working_directory: Optional[Path] = None
        self._config_properties: Dict[str, Any] = {}
        self._system_properties: Dict[str, Any] = {}
        self._environment_variables: Dict[str, Any] = {}
        self._jvm_options: List[str] = []
        self._customizers: List[WorkingDirectoryCustomizer] = []
        self._destroyer: Optional[WorkingDirectoryDestroyer] = None
        self._startup_timeout: Optional[float] = None
        self._stop_timeout: Optional[float] = None
        self._register_shutdown_hook: Optional[bool] = None
        self._artifact_provider: Any = None
        self._readiness_checks: Optional[ReadinessChecksFactory] = None

    def name(self, name: str) -> "CassandraBuilder":
        if not name:
            raise ValueError("name must not be empty")
        self._name = name
        return self

    def version(self, version: Union[Version, str]) -> "CassandraBuilder":
        self._version = version if isinstance(version, Version) else Version.parse(version)
        return self

    def working_directory(self, path: Path) -> "CassandraBuilder":
        self._working_directory = Path(path)
        return self

    def add_config_property(self, name: str, value: Any) -> "CassandraBuilder":
        self._config_properties[name] = value
        return self

    def config_properties(self, properties: Mapping[str, Any]) -> "CassandraBuilder":
        self._config_properties = dict(properties)
        return self

    def add_system_property(self, name: str, value: Any = None) -> "CassandraBuilder":
        self._system_properties[name] = value
        return self

    def system_properties(self, properties: Mapping[str, Any]) -> "CassandraBuilder":
        self._system_properties = dict(properties)
        return self

    def add_environment_variable(self, name: str, value: Any) -> "CassandraBuilder":
        self._environment_variables[name] = value
        return self

    def environment_variables(self, variables: Mapping[str, Any]) -> "CassandraBuilder":
        self._environment_variables = dict(variables)
        return self

    def add_jvm_options(self, *options: str) -> "CassandraBuilder":
        self._jvm_options.extend(options)
        return self

    def seeds(self, *seeds: str) -> "CassandraBuilder":
        """Shortcut for a ``SimpleSeedProvider`` ``seed_provider`` property."""
        return self.add_config_property("seed_provider", simple_seed_provider(*seeds))

    def add_working_directory_customizer(self, customizer: WorkingDirectoryCustomizer) -> "CassandraBuilder":
        self._customizers.append(customizer)
        return self

    def add_config_file_properties(self, properties: Mapping[str, Any], config_file: str = "conf/cassandra.yaml") -> "CassandraBuilder":
        """Rewrite ``config_file`` in the working directory itself (before launch)."""
        return self.add_working_directory_customizer(set_config_properties(properties, config_file))

    def working_directory_destroyer(self, destroyer: WorkingDirectoryDestroyer) -> "CassandraBuilder":
        self._destroyer = destroyer
        return self

    def startup_timeout(self, seconds: float) -> "CassandraBuilder":
        if seconds <= 0:
            raise ValueError(f"startup timeout must be positive (got {seconds})")
        self._startup_timeout = float(seconds)
        return self

    def stop_timeout(self, seconds: float) -> "CassandraBuilder":
        if seconds < 0:
            raise ValueError(f"stop timeout must not be negative (got {seconds})")
        self._stop_timeout = float(seconds)
        return self

    def register_shutdown_hook(self, enabled: bool) -> "CassandraBuilder":
        self._register_shutdown_hook = bool(enabled)
        return self

    def artifact_provider(self, provider: Any) -> "CassandraBuilder":
        """Anything with ``resolve(version) -> Path``."""
        self._artifact_provider = provider
        return self

    def readiness_checks(self, factory: ReadinessChecksFactory) -> "CassandraBuilder":
        self._readiness_checks = factory
        return self

    def build(self) -> LifecycleController:
        return LifecycleController(
            self._name or _next_name(),
            self._version,
            artifact_provider=self._artifact_provider,
            working_directory=self._working_directory,
            customizers=list(self._customizers),
            destroyer=self._destroyer,
            config_properties=dict(self._config_properties),
            system_properties=dict(self._system_properties),
            environment_variables=dict(self._environment_variables),
            jvm_options=list(self._jvm_options),
            startup_timeout=self._startup_timeout,
            stop_timeout=self._stop_timeout,
            register_shutdown_hook=self._register_shutdown_hook,
            readiness_checks=self._readiness_checks,
        )


__all__ = ["CassandraBuilder"]
