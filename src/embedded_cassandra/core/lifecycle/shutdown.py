"""Per-instance process-exit hook."""
from __future__ import annotations

import atexit
import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class ShutdownHook:
    """One ``atexit`` registration that can be added and removed deterministically."""

    def __init__(self, callback: Callable[[], None], *, name: str = "") -> None:
        self._callback = callback
        self.name = name or getattr(callback, "__qualname__", repr(callback))
        self._lock = threading.Lock()
        self._registered = False

    @property
    def registered(self) -> bool:
        with self._lock:
            return self._registered

    def _run(self) -> None:
        try:
            self._callback()
        except Exception:
            logger.warning("Shutdown hook %s failed", self.name, exc_info=True)

    def register(self) -> bool:
        """Register with ``atexit``; returns False if it already was."""
        with self._lock:
            if self._registered:
                return False
            atexit.register(self._run)
            self._registered = True
            logger.debug("Registered shutdown hook %s", self.name)
            return True

    def unregister(self) -> bool:
        with self._lock:
            if not self._registered:
                return False
            atexit.unregister(self._run)
            self._registered = False
            logger.debug("Unregistered shutdown hook %s", self.name)
            return True


__all__ = ["ShutdownHook"]
