"""Base class for domain-specific configuration accessors."""
from __future__ import annotations

from abc import ABC, abstractmethod
from functools import cached_property
from pathlib import Path
from typing import Any, Dict, Optional

from embedded_cassandra.core.exceptions import ConfigurationError

from .cache import get_cached_config


class BaseDomainConfig(ABC):
    """Abstract base class for domain-specific configuration accessors.

    Usage:
        class MyConfig(BaseDomainConfig):
            def _config_section(self) -> str:
                return "mySection"

            @cached_property
            def my_setting(self) -> float:
                return self._float("my_setting")
    """

    def __init__(self, config_dir: Optional[Path] = None, *, config: Optional[Dict[str, Any]] = None) -> None:
        self._config = config if config is not None else get_cached_config(config_dir)

    @abstractmethod
    def _config_section(self) -> str:
        """Return the top-level config key for this domain."""
        ...

    @cached_property
    def section(self) -> Dict[str, Any]:
        """This domain's configuration section (empty dict if absent)."""
        return self._config.get(self._config_section(), {}) or {}

    def _require(self, key: str) -> Any:
        if key not in self.section:
            raise ConfigurationError(
                f"{self._config_section()}.{key} missing from configuration",
                context={"section": self._config_section(), "key": key},
            )
        return self.section[key]

    def _float(self, key: str) -> float:
        value = self._require(key)
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"{self._config_section()}.{key} must be a number (got {value!r})"
            ) from exc

    def _int(self, key: str) -> int:
        value = self._require(key)
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"{self._config_section()}.{key} must be an integer (got {value!r})"
            ) from exc


__all__ = ["BaseDomainConfig"]
