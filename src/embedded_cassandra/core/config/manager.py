"""
Configuration loading for embedded Cassandra (YAML only).
"""
from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

import jsonschema
import yaml

from embedded_cassandra.core.exceptions import ConfigurationError
from embedded_cassandra.core.utils.io import read_yaml
from embedded_cassandra.core.utils.merge import deep_merge
from embedded_cassandra.data import get_data_path

logger = logging.getLogger(__name__)

ENV_PREFIX = "EMBEDDED_CASSANDRA_"
CONFIG_DIR_ENV = "EMBEDDED_CASSANDRA_CONFIG_DIR"
DEFAULT_USER_CONFIG_DIR = Path("~/.embedded-cassandra/config")


class ConfigManager:
    """Load, merge, and validate configuration.

    Configuration sources (highest to lowest priority):
    1. Environment variables: EMBEDDED_CASSANDRA_<section>__<key>
    2. User config: ``$EMBEDDED_CASSANDRA_CONFIG_DIR/*.yaml`` or
       ``~/.embedded-cassandra/config/*.yaml`` (alphabetical order)
    3. Bundled defaults: embedded_cassandra.data/config/*.yaml
    """

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        self.core_config_dir = get_data_path("config")
        self.user_config_dir = self.resolve_user_config_dir(config_dir)
        self.schemas_dir = get_data_path("schemas")

    @staticmethod
    def resolve_user_config_dir(config_dir: Optional[Path] = None) -> Path:
        if config_dir is not None:
            return Path(config_dir).expanduser()
        env_dir = os.environ.get(CONFIG_DIR_ENV)
        if env_dir:
            return Path(env_dir).expanduser()
        return DEFAULT_USER_CONFIG_DIR.expanduser()

    # ---------- YAML sources ----------

    @staticmethod
    def iter_yaml_files(directory: Path) -> List[Path]:
        if not directory.is_dir():
            return []
        return sorted(
            p for p in directory.iterdir() if p.is_file() and p.suffix in (".yaml", ".yml")
        )

    def _load_directory(self, directory: Path, cfg: Dict[str, Any]) -> Dict[str, Any]:
        for path in self.iter_yaml_files(directory):
            try:
                data = read_yaml(path, default={}, raise_on_error=True)
            except yaml.YAMLError as exc:
                # Fail closed: configuration must never silently ignore invalid YAML.
                raise ConfigurationError(f"Invalid YAML in {path}: {exc}", context={"path": str(path)}) from exc
            if not isinstance(data, dict):
                raise ConfigurationError(
                    f"Configuration file {path} must contain a mapping",
                    context={"path": str(path)},
                )
            cfg = deep_merge(cfg, data)
        return cfg

    # ---------- Environment overrides ----------

    def _as_bool(self, v: str) -> Optional[bool]:
        low = v.strip().lower()
        if low in {"true", "false"}:
            return low == "true"
        return None

    def _as_int(self, v: str) -> Optional[int]:
        if re.fullmatch(r"[-+]?\d+", v.strip() or " "):
            return int(v)
        return None

    def _as_float(self, v: str) -> Optional[float]:
        s = v.strip()
        if re.fullmatch(r"[-+]?\d*\.\d+", s) or re.fullmatch(r"[-+]?\d+\.\d*", s):
            return float(s)
        return None

    def _as_json(self, v: str) -> Optional[Any]:
        s = v.strip()
        if (s.startswith("{") and s.endswith("}")) or (s.startswith("[") and s.endswith("]")):
            try:
                return json.loads(s)
            except ValueError:
                return None
        return None

    def _as_null(self, v: str) -> Optional[Any]:
        return _NULL if v.strip().lower() in {"null", "none", "~"} else None

    def _coerce_type(self, value: str) -> Any:
        for caster in (self._as_bool, self._as_int, self._as_float, self._as_json, self._as_null):
            result = caster(value)
            if result is _NULL:
                return None
            if result is not None:
                return result
        return value.strip()

    def _iter_env_overrides(self) -> Iterator[Tuple[List[str], Any]]:
        for key in sorted(os.environ.keys()):
            if not key.startswith(ENV_PREFIX) or key == CONFIG_DIR_ENV:
                continue
            raw = key[len(ENV_PREFIX):]
            segs = raw.split("__")
            if not raw or any(seg == "" for seg in segs):
                logger.warning("Ignoring malformed configuration override %s", key)
                continue
            yield [seg.lower() for seg in segs], self._coerce_type(os.environ[key])

    def apply_env_overrides(self, cfg: Dict[str, Any]) -> None:
        for path, value in self._iter_env_overrides():
            cur = cfg
            for part in path[:-1]:
                nxt = cur.get(part)
                if not isinstance(nxt, dict):
                    nxt = {}
                    cur[part] = nxt
                cur = nxt
            cur[path[-1]] = value

    # ---------- Validation ----------

    def validate_schema(self, config: Dict[str, Any], schema_name: str = "config.schema.yaml") -> None:
        schema = read_yaml(self.schemas_dir / schema_name, default={}, raise_on_error=True)
        validator = jsonschema.Draft202012Validator(schema)
        errors = sorted(validator.iter_errors(config), key=lambda e: list(e.path))
        if errors:
            messages = [
                f"{'.'.join(str(p) for p in err.path) or '<root>'}: {err.message}" for err in errors
            ]
            raise ConfigurationError(
                "Invalid configuration: " + "; ".join(messages),
                context={"errors": messages},
            )

    # ---------- Public API ----------

    def load_config(self, *, validate: bool = True) -> Dict[str, Any]:
        """Return the merged configuration dictionary."""
        cfg: Dict[str, Any] = self._load_directory(self.core_config_dir, {})
        cfg = self._load_directory(self.user_config_dir, cfg)
        self.apply_env_overrides(cfg)
        if validate:
            self.validate_schema(cfg)
        return cfg

    def fingerprint(self) -> str:
        """Describe the inputs of :meth:`load_config` so cached results can be invalidated."""
        env_items = sorted((k, v) for k, v in os.environ.items() if k.startswith(ENV_PREFIX))
        files: List[Tuple[str, int, int]] = []
        for path in self.iter_yaml_files(self.user_config_dir):
            try:
                st = path.stat()
            except OSError:
                continue
            files.append((str(path), int(st.st_mtime_ns), int(st.st_size)))
        return repr((str(self.user_config_dir), env_items, files))


_NULL = object()


__all__ = ["ConfigManager", "ENV_PREFIX", "CONFIG_DIR_ENV"]
