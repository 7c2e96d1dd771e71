"""Launch fake servers through the real launcher."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

from embedded_cassandra.core.process import ProcessHandle, ProcessLauncher
from embedded_cassandra.core.version import Version

from .distribution import write_fake_distribution


class FakeServers:
    """Launch fake distributions and make sure none outlives the test."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.handles: List[ProcessHandle] = []
        self._count = 0

    def launch(
        self,
        mode: str = "serve",
        *,
        version: str = "4.1.3",
        config_properties: Optional[Dict[str, Any]] = None,
        system_properties: Optional[Dict[str, Any]] = None,
    ) -> ProcessHandle:
        self._count += 1
        home = write_fake_distribution(self.root / f"server-{self._count}", version)
        launcher = ProcessLauncher()
        spec = launcher.prepare(
            f"fake-{self._count}",
            home,
            Version.parse(version),
            config_properties={"native_transport_port": 0, **(config_properties or {})},
            system_properties=system_properties,
            environment_variables={"FAKE_CASSANDRA_MODE": mode},
        )
        handle = launcher.launch(spec)
        self.handles.append(handle)
        return handle

    def cleanup(self) -> None:
        for handle in self.handles:
            if handle.is_alive():
                handle.kill(timeout=5)
