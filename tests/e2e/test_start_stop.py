"""End-to-end: download from a mirror, start, query settings, stop."""
from __future__ import annotations

import os
from pathlib import Path

import pytest

from embedded_cassandra import CassandraBuilder, State
from embedded_cassandra.core.artifact import ArtifactProvider
from embedded_cassandra.core.utils.network import is_port_open
from embedded_cassandra.core.working_directory import delete_all
from helpers.distribution import tarball_bytes, write_fake_distribution
from helpers.mirror import MirrorServer
from helpers.timeouts import STARTUP_TIMEOUT

pytestmark = pytest.mark.skipif(os.name != "posix", reason="process groups are POSIX only")

VERSION = "4.1.3"


@pytest.fixture
def mirror(tmp_path: Path):
    home = write_fake_distribution(tmp_path / "build", VERSION)
    path = f"/{VERSION}/apache-cassandra-{VERSION}-bin.tar.gz"
    with MirrorServer({path: tarball_bytes(home)}) as server:
        yield server


def _builder(provider: ArtifactProvider, working_directory: Path) -> CassandraBuilder:
    return (
        CassandraBuilder()
        .version(VERSION)
        .artifact_provider(provider)
        .working_directory(working_directory)
        .add_config_property("native_transport_port", 0)
        .startup_timeout(STARTUP_TIMEOUT)
        .register_shutdown_hook(False)
    )


class TestStartStop:
    def test_download_start_and_stop(self, tmp_path: Path, mirror: MirrorServer) -> None:
        provider = ArtifactProvider(mirrors=[mirror.template()], cache_directory=tmp_path / "cache")
        cassandra = _builder(provider, tmp_path / "work").build()

        cassandra.start()
        try:
            settings = cassandra.get_settings()
            assert cassandra.state is State.STARTED
            assert str(settings.version) == VERSION
            assert is_port_open(settings.address, settings.port)
        finally:
            cassandra.stop()

        assert cassandra.state is State.STOPPED
        assert not is_port_open(settings.address, settings.port)
        assert (tmp_path / "cache" / VERSION / f"apache-cassandra-{VERSION}-bin.tar.gz").is_file()

    def test_two_instances_share_the_cached_archive(self, tmp_path: Path, mirror: MirrorServer) -> None:
        provider = ArtifactProvider(mirrors=[mirror.template()], cache_directory=tmp_path / "cache")
        first = _builder(provider, tmp_path / "one").build()
        second = _builder(provider, tmp_path / "two").working_directory_destroyer(delete_all()).build()

        with first, second:
            assert first.get_settings().port != second.get_settings().port
            assert first.is_running() and second.is_running()

        assert len(mirror.archive_requests()) == 1
        assert not (tmp_path / "two").exists()
        assert (tmp_path / "one" / "conf").exists()
