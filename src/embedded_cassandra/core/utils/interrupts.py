"""Cooperative thread interruption.

Python threads cannot be interrupted from the outside, so blocking steps in
this package (lock waits, downloads, readiness polling, stop grace periods)
check a per-thread flag instead. Another thread requests interruption with
:func:`interrupt`; the blocked thread then raises
:class:`~embedded_cassandra.core.exceptions.ThreadInterruptedError` from
:func:`check_interrupted` or :func:`sleep`, clearing its flag.

Example:
    >>> worker = threading.Thread(target=cassandra.start)
    >>> worker.start()
    >>> interrupt(worker)
"""
from __future__ import annotations

import threading
import weakref
from typing import Optional

from ..exceptions import ThreadInterruptedError

_FLAGS: "weakref.WeakKeyDictionary[threading.Thread, threading.Event]" = weakref.WeakKeyDictionary()
_FLAGS_MUTEX = threading.Lock()


def _flag(thread: Optional[threading.Thread] = None) -> threading.Event:
    thread = thread or threading.current_thread()
    with _FLAGS_MUTEX:
        event = _FLAGS.get(thread)
        if event is None:
            event = threading.Event()
            _FLAGS[thread] = event
        return event


def interrupt(thread: threading.Thread) -> None:
    """Set the interrupt flag of ``thread`` and wake it if it is sleeping."""
    _flag(thread).set()


def is_interrupted(thread: Optional[threading.Thread] = None) -> bool:
    """Return whether ``thread`` (default: the current thread) has a pending interrupt."""
    return _flag(thread).is_set()


def clear_interrupt() -> bool:
    """Clear the current thread's flag and return whether it was set."""
    event = _flag()
    was_set = event.is_set()
    event.clear()
    return was_set


def check_interrupted() -> None:
    """Raise ``ThreadInterruptedError`` if the current thread has been interrupted."""
    if clear_interrupt():
        raise ThreadInterruptedError(f"Thread {threading.current_thread().name} was interrupted")


def sleep(seconds: float) -> None:
    """Sleep for ``seconds`` unless the current thread is interrupted first."""
    if seconds > 0:
        _flag().wait(seconds)
    check_interrupted()


__all__ = ["interrupt", "is_interrupted", "clear_interrupt", "check_interrupted", "sleep"]
