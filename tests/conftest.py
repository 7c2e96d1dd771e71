import os
import sys
from pathlib import Path

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'embedded_cassandra' and tests/ as 'helpers'
for p in (SRC_ROOT, TESTS_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))


from embedded_cassandra.core.config import clear_config_cache
from embedded_cassandra.core.config.manager import CONFIG_DIR_ENV, ENV_PREFIX
from embedded_cassandra.core.utils import interrupts
from embedded_cassandra.core.utils.stdlib_logging import reset_stdlib_logging_for_tests


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point configuration at an empty per-test user dir and a per-test artifact cache.

    Overrides leaking from the developer's shell would make config-dependent
    tests non-deterministic, so every EMBEDDED_CASSANDRA_* variable is dropped.
    """
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key, raising=False)
    user_dir = tmp_path / "user-config"
    monkeypatch.setenv(CONFIG_DIR_ENV, str(user_dir))
    monkeypatch.setenv("EMBEDDED_CASSANDRA_DOWNLOAD__CACHE_DIRECTORY", str(tmp_path / "artifact-cache"))
    clear_config_cache()
    yield user_dir
    clear_config_cache()
    interrupts.clear_interrupt()
    reset_stdlib_logging_for_tests()


@pytest.fixture
def user_config_dir(isolated_config: Path) -> Path:
    isolated_config.mkdir(parents=True, exist_ok=True)
    return isolated_config
