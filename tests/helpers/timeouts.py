"""Centralized test timeout configuration.

All test timeouts should use these configurable values to work reliably
in slow CI environments and different hardware configurations.

Environment variables:
- TEST_TIMEOUT_MULTIPLIER: Multiply all timeouts by this factor (default: 1.0)
- TEST_POLL_INTERVAL: Poll interval for state checks (default: 0.05)
- TEST_THREAD_JOIN_TIMEOUT: Timeout for thread joins (default: 10.0)
- TEST_LOCK_TIMEOUT: Timeout for file lock operations (default: 2.0)
- TEST_STARTUP_TIMEOUT: Readiness timeout for fake servers (default: 20.0)
"""
from __future__ import annotations

import os
import time
from typing import Callable


def _get_float_env(name: str, default: float) -> float:
    """Get float from environment variable with fallback."""
    try:
        return float(os.environ.get(name, str(default)))
    except (ValueError, TypeError):
        return default


# Global timeout multiplier for CI environments
TIMEOUT_MULTIPLIER = _get_float_env("TEST_TIMEOUT_MULTIPLIER", 1.0)

POLL_INTERVAL = _get_float_env("TEST_POLL_INTERVAL", 0.05)
THREAD_JOIN_TIMEOUT = _get_float_env("TEST_THREAD_JOIN_TIMEOUT", 10.0) * TIMEOUT_MULTIPLIER
LOCK_TIMEOUT = _get_float_env("TEST_LOCK_TIMEOUT", 2.0) * TIMEOUT_MULTIPLIER
PROCESS_WAIT_TIMEOUT = _get_float_env("TEST_PROCESS_WAIT_TIMEOUT", 10.0) * TIMEOUT_MULTIPLIER
STARTUP_TIMEOUT = _get_float_env("TEST_STARTUP_TIMEOUT", 20.0) * TIMEOUT_MULTIPLIER

# Short sleeps for coordination (e.g., ensuring background task starts)
SHORT_SLEEP = _get_float_env("TEST_SHORT_SLEEP", 0.05) * TIMEOUT_MULTIPLIER
MEDIUM_SLEEP = _get_float_env("TEST_MEDIUM_SLEEP", 0.2) * TIMEOUT_MULTIPLIER


def wait_for_condition(
    condition: Callable[[], bool],
    timeout: float | None = None,
    poll_interval: float | None = None,
) -> bool:
    """Wait for a condition to be true with configurable timeout.

    Returns:
        True if condition met within timeout, False otherwise
    """
    timeout = timeout if timeout is not None else PROCESS_WAIT_TIMEOUT
    poll_interval = poll_interval if poll_interval is not None else POLL_INTERVAL

    deadline = time.time() + timeout
    while time.time() < deadline:
        if condition():
            return True
        time.sleep(poll_interval)
    return condition()


def short_sleep() -> None:
    """Sleep for a short configurable duration.

    Use for coordination between threads to ensure background tasks have
    started.
    """
    time.sleep(SHORT_SLEEP)
