"""Tests for ShutdownHook."""
from __future__ import annotations

import logging

import pytest

from embedded_cassandra.core.lifecycle import ShutdownHook
from embedded_cassandra.core.lifecycle import shutdown as shutdown_module


class FakeAtexit:
    def __init__(self) -> None:
        self.registered = []

    def register(self, fn):
        self.registered.append(fn)
        return fn

    def unregister(self, fn) -> None:
        self.registered = [f for f in self.registered if f != fn]


@pytest.fixture
def fake_atexit(monkeypatch: pytest.MonkeyPatch) -> FakeAtexit:
    fake = FakeAtexit()
    monkeypatch.setattr(shutdown_module, "atexit", fake)
    return fake


class TestShutdownHook:
    def test_register_is_idempotent(self, fake_atexit: FakeAtexit) -> None:
        hook = ShutdownHook(lambda: None, name="c0")
        assert hook.register() is True
        assert hook.register() is False
        assert len(fake_atexit.registered) == 1
        assert hook.registered

    def test_unregister(self, fake_atexit: FakeAtexit) -> None:
        hook = ShutdownHook(lambda: None)
        assert hook.unregister() is False
        hook.register()
        assert hook.unregister() is True
        assert fake_atexit.registered == []
        assert not hook.registered

    def test_hooks_are_independent(self, fake_atexit: FakeAtexit) -> None:
        first, second = ShutdownHook(lambda: None), ShutdownHook(lambda: None)
        first.register()
        second.register()
        first.unregister()
        assert len(fake_atexit.registered) == 1

    def test_run_calls_callback(self, fake_atexit: FakeAtexit) -> None:
        calls = []
        hook = ShutdownHook(lambda: calls.append(1))
        hook.register()
        fake_atexit.registered[0]()
        assert calls == [1]

    def test_failing_callback_is_logged(self, fake_atexit: FakeAtexit, caplog: pytest.LogCaptureFixture) -> None:
        def boom() -> None:
            raise RuntimeError("stop failed")

        hook = ShutdownHook(boom, name="broken")
        hook.register()
        with caplog.at_level(logging.WARNING):
            fake_atexit.registered[0]()
        assert any("broken" in r.getMessage() for r in caplog.records)
