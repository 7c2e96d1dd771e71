"""Tests for the typed configuration accessors."""
from __future__ import annotations

from pathlib import Path

import pytest

from embedded_cassandra.core.config import (
    BaseDomainConfig,
    ChecksumMode,
    DownloadConfig,
    FileLockingConfig,
    LifecycleConfig,
    ProcessConfig,
)
from embedded_cassandra.core.exceptions import ConfigurationError


class TestBaseDomainConfig:
    def test_base_config_is_abstract(self) -> None:
        with pytest.raises(TypeError):
            BaseDomainConfig()  # type: ignore[abstract]

    def test_explicit_config_mapping(self) -> None:
        class MyConfig(BaseDomainConfig):
            def _config_section(self) -> str:
                return "mine"

        cfg = MyConfig(config={"mine": {"a": "1.5", "b": "x"}})
        assert cfg._float("a") == 1.5
        with pytest.raises(ConfigurationError):
            cfg._int("b")
        with pytest.raises(ConfigurationError) as exc_info:
            cfg._require("missing")
        assert exc_info.value.context == {"section": "mine", "key": "missing"}

    def test_absent_section_is_empty(self) -> None:
        class Missing(BaseDomainConfig):
            def _config_section(self) -> str:
                return "nope"

        assert Missing(config={}).section == {}


class TestDomainConfigs:
    def test_download(self, tmp_path: Path) -> None:
        cfg = DownloadConfig()
        assert cfg.max_redirects == 20
        assert cfg.connect_timeout_seconds == 3.0
        assert cfg.read_timeout_seconds == 10.0
        assert cfg.proxy is None
        assert cfg.checksum is ChecksumMode.OPTIONAL
        assert cfg.progress_step_percent == 10
        assert cfg.cache_directory == tmp_path / "artifact-cache"
        assert len(cfg.mirrors) == 3

    def test_cache_directory_expands_user(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("HOME", str(tmp_path))
        cfg = DownloadConfig(config={"download": {"cache_directory": "~/cache"}})
        assert cfg.cache_directory == tmp_path / "cache"

    def test_file_locking(self) -> None:
        cfg = FileLockingConfig()
        assert cfg.timeout_seconds == 300.0
        assert cfg.poll_interval_seconds == 0.1

    def test_lifecycle(self) -> None:
        cfg = LifecycleConfig()
        assert cfg.default_version == "4.1.3"
        assert cfg.startup_timeout_seconds == 120.0
        assert cfg.stop_timeout_seconds == 10.0
        assert cfg.kill_timeout_seconds == 10.0
        assert cfg.register_shutdown_hook is True

    def test_process(self) -> None:
        assert ProcessConfig().output_buffer_lines == 1000

    def test_env_override_reaches_accessor(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EMBEDDED_CASSANDRA_DOWNLOAD__CHECKSUM", "required")
        assert DownloadConfig().checksum is ChecksumMode.REQUIRED
