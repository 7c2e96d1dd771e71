"""Centralized configuration caching.

Provides a single source of truth for loaded configuration across all domain
configs. Entries are keyed by a fingerprint of the environment overrides and
the user config files, so changes made by tests or long-running processes are
picked up without an explicit reset.
"""
from __future__ import annotations

import copy
import hashlib
import threading
from pathlib import Path
from typing import Any, Dict, Optional

_config_cache: Dict[str, Dict[str, Any]] = {}
_cache_mutex = threading.Lock()


def get_cached_config(config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Return the merged, validated configuration (a deep copy)."""
    from .manager import ConfigManager

    manager = ConfigManager(config_dir)
    key = hashlib.sha256(manager.fingerprint().encode("utf-8")).hexdigest()
    with _cache_mutex:
        cached = _config_cache.get(key)
        if cached is None:
            cached = manager.load_config(validate=True)
            _config_cache[key] = cached
        return copy.deepcopy(cached)


def clear_config_cache() -> None:
    """Drop all cached configuration."""
    with _cache_mutex:
        _config_cache.clear()


__all__ = ["get_cached_config", "clear_config_cache"]
