"""Lifecycle states of one Cassandra instance and the transitions between them."""
from __future__ import annotations

import enum
from typing import Dict, FrozenSet


class State(str, enum.Enum):
    NEW = "NEW"
    STARTING = "STARTING"
    START_FAILED = "START_FAILED"
    START_INTERRUPTED = "START_INTERRUPTED"
    STARTED = "STARTED"
    STOPPING = "STOPPING"
    STOP_FAILED = "STOP_FAILED"
    STOP_INTERRUPTED = "STOP_INTERRUPTED"
    STOPPED = "STOPPED"

    def __str__(self) -> str:
        return self.value


# Every state change goes through LifecycleController._transition, which
# rejects anything not listed here.
TRANSITIONS: Dict[State, FrozenSet[State]] = {
    State.NEW: frozenset({State.STARTING}),
    State.STARTING: frozenset({State.STARTED, State.START_FAILED, State.START_INTERRUPTED}),
    State.START_FAILED: frozenset({State.STARTING, State.STOPPING}),
    State.START_INTERRUPTED: frozenset({State.STARTING, State.STOPPING}),
    State.STARTED: frozenset({State.STOPPING}),
    State.STOPPING: frozenset({State.STOPPED, State.STOP_FAILED, State.STOP_INTERRUPTED}),
    # The process may still be alive: it has to be stopped before a new start.
    State.STOP_FAILED: frozenset({State.STOPPING}),
    State.STOP_INTERRUPTED: frozenset({State.STARTING, State.STOPPING}),
    State.STOPPED: frozenset({State.STARTING}),
}

# States in which another thread is mid-transition; callers wait them out.
IN_FLIGHT_STATES: FrozenSet[State] = frozenset({State.STARTING, State.STOPPING})


def can_transition(current: State, target: State) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


__all__ = ["IN_FLIGHT_STATES", "State", "TRANSITIONS", "can_transition"]
