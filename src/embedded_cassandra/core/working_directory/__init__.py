"""Working directory materialization, customization and teardown."""
from __future__ import annotations

from .customizers import (
    AddResource,
    ConfigPropertiesCustomizer,
    WorkingDirectoryCustomizer,
    add_credentials,
    add_resource,
    add_to_classpath,
    set_config_properties,
)
from .destroyers import (
    DEFAULT_DELETE_PATHS,
    WorkingDirectoryDestroyer,
    delete_all,
    delete_only,
    do_nothing,
)
from .initializer import CopyStrategy, WorkingDirectoryInitializer, find_distribution_home

__all__ = [
    "AddResource",
    "ConfigPropertiesCustomizer",
    "CopyStrategy",
    "DEFAULT_DELETE_PATHS",
    "WorkingDirectoryCustomizer",
    "WorkingDirectoryDestroyer",
    "WorkingDirectoryInitializer",
    "add_credentials",
    "add_resource",
    "add_to_classpath",
    "delete_all",
    "delete_only",
    "do_nothing",
    "find_distribution_home",
    "set_config_properties",
]
