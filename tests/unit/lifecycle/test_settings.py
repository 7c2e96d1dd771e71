"""Tests for Settings and the port/address resolvers."""
from __future__ import annotations

import ipaddress
from pathlib import Path

import pytest

from embedded_cassandra.core.lifecycle import Settings
from embedded_cassandra.core.lifecycle.settings import (
    resolve_address,
    resolve_native_port,
    resolve_rpc_port,
    resolve_ssl_port,
)
from embedded_cassandra.core.version import Version


def make_settings(**overrides) -> Settings:
    values = dict(
        name="cassandra-0",
        version=Version.parse("4.1.3"),
        address=ipaddress.ip_address("127.0.0.1"),
        port=9042,
        ssl_port=None,
        rpc_port=None,
        working_directory=Path("/tmp/work"),
        config_properties={
            "cluster_name": "it",
            "client_encryption_options": {"keystore_password": "secret"},
            "server_encryption_options": {"truststore_password": "secret"},
        },
    )
    values.update(overrides)
    return Settings(**values)


class TestSettings:
    def test_repr_redacts_encryption_options(self) -> None:
        text = repr(make_settings())
        assert "secret" not in text
        assert "'client_encryption_options': '***'" in text
        assert "cluster_name" in text

    def test_config_properties_are_not_modified_by_redaction(self) -> None:
        settings = make_settings()
        repr(settings)
        assert settings.config_properties["client_encryption_options"] == {"keystore_password": "secret"}

    def test_to_dict(self) -> None:
        assert make_settings().to_dict() == {
            "name": "cassandra-0",
            "version": "4.1.3",
            "address": "127.0.0.1",
            "port": 9042,
            "ssl_port": None,
            "rpc_port": None,
            "working_directory": str(Path("/tmp/work")),
        }

    def test_frozen(self) -> None:
        with pytest.raises(AttributeError):
            make_settings().port = 1  # type: ignore[misc]


class TestResolvers:
    def test_native_port_precedence(self) -> None:
        assert resolve_native_port({}, {}) == 9042
        assert resolve_native_port({"native_transport_port": 19042}, {}) == 19042
        assert resolve_native_port({"native_transport_port": 19042}, {"cassandra.native_transport_port": "29042"}) == 29042

    def test_ssl_port(self) -> None:
        assert resolve_ssl_port({}) is None
        assert resolve_ssl_port({"native_transport_port_ssl": "9142"}) == 9142

    def test_rpc_port(self) -> None:
        assert resolve_rpc_port(Version.parse("4.0"), {"rpc_port": 9170}, {}) is None
        v3 = Version.parse("3.11.16")
        assert resolve_rpc_port(v3, {}, {}) == 9160
        assert resolve_rpc_port(v3, {"rpc_port": 9170}, {}) == 9170
        assert resolve_rpc_port(v3, {"rpc_port": 9170}, {"cassandra.rpc_port": "9180"}) == 9180

    def test_address(self) -> None:
        assert str(resolve_address({})) == "127.0.0.1"
        assert str(resolve_address({"listen_address": "10.0.0.1"})) == "10.0.0.1"
        assert str(resolve_address({"rpc_address": "::1", "listen_address": "10.0.0.1"})) == "::1"
        assert str(resolve_address({"rpc_address": "localhost"})) == "127.0.0.1"
