"""Collapse concurrent calls for the same key into one execution."""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Hashable, Optional, TypeVar

from ..exceptions import ThreadInterruptedError
from ..utils import interrupts

logger = logging.getLogger(__name__)

T = TypeVar("T")

_WAIT_SLICE_SECONDS = 0.05


class _Call:
    __slots__ = ("done", "result", "error")

    def __init__(self) -> None:
        self.done = threading.Event()
        self.result: Any = None
        self.error: Optional[BaseException] = None


def _copy_error(error: BaseException) -> BaseException:
    """Return a new instance of ``error`` carrying the same args and attributes.

    ``__init__`` is not called, so subclasses with their own constructor
    signature are copied as they are.
    """
    cls = type(error)
    clone = cls.__new__(cls, *error.args)
    clone.__dict__.update(vars(error))
    return clone


class SingleFlight:
    """At most one in-flight call per key; concurrent callers share its outcome.

    The key is forgotten once the call completes, so later callers run the
    function again (the artifact cache makes that cheap).
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: Dict[Hashable, _Call] = {}

    def in_flight(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._calls

    def do(self, key: Hashable, fn: Callable[[], T]) -> T:
        while True:
            with self._lock:
                call = self._calls.get(key)
                leader = call is None
                if leader:
                    call = _Call()
                    self._calls[key] = call

            if leader:
                return self._run(key, call, fn)

            logger.debug("Waiting for in-flight call %s", key)
            while not call.done.wait(_WAIT_SLICE_SECONDS):
                interrupts.check_interrupted()
            if isinstance(call.error, (ThreadInterruptedError, KeyboardInterrupt)):
                # The leader was interrupted, not the work itself: try again.
                continue
            if call.error is not None:
                # Each waiter raises its own instance; the shared one would
                # collect every waiter's frames in its traceback.
                raise _copy_error(call.error) from call.error
            return call.result

    def _run(self, key: Hashable, call: _Call, fn: Callable[[], T]) -> T:
        try:
            call.result = fn()
            return call.result
        except BaseException as exc:
            call.error = exc
            raise
        finally:
            with self._lock:
                self._calls.pop(key, None)
            call.done.set()


__all__ = ["SingleFlight"]
