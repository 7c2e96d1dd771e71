"""Tests for the lifecycle state table."""
from __future__ import annotations

import pytest

from embedded_cassandra.core.lifecycle import TRANSITIONS, State
from embedded_cassandra.core.lifecycle.state import IN_FLIGHT_STATES, can_transition


class TestTransitions:
    def test_every_state_has_an_entry(self) -> None:
        assert set(TRANSITIONS) == set(State)

    @pytest.mark.parametrize(
        "source,target",
        [
            (State.NEW, State.STARTING),
            (State.STARTING, State.STARTED),
            (State.STARTING, State.START_FAILED),
            (State.STARTING, State.START_INTERRUPTED),
            (State.START_FAILED, State.STARTING),
            (State.START_INTERRUPTED, State.STOPPING),
            (State.STARTED, State.STOPPING),
            (State.STOPPING, State.STOPPED),
            (State.STOPPING, State.STOP_FAILED),
            (State.STOPPING, State.STOP_INTERRUPTED),
            (State.STOP_FAILED, State.STOPPING),
            (State.STOP_INTERRUPTED, State.STARTING),
            (State.STOPPED, State.STARTING),
        ],
    )
    def test_allowed(self, source: State, target: State) -> None:
        assert can_transition(source, target)

    @pytest.mark.parametrize(
        "source,target",
        [
            (State.NEW, State.STOPPING),
            (State.NEW, State.STARTED),
            (State.STARTED, State.STARTING),
            (State.STOPPED, State.STOPPING),
            (State.STOP_FAILED, State.STARTING),
            (State.STARTING, State.STOPPING),
        ],
    )
    def test_rejected(self, source: State, target: State) -> None:
        assert not can_transition(source, target)

    def test_in_flight_states(self) -> None:
        assert IN_FLIGHT_STATES == {State.STARTING, State.STOPPING}

    def test_str_is_value(self) -> None:
        assert str(State.START_INTERRUPTED) == State.START_INTERRUPTED.value
