"""Fake Cassandra distributions for tests.

The fake ``bin/cassandra`` is a Python script run with the test interpreter.
It reads the configuration file passed through ``-Dcassandra.config`` in
``JVM_EXTRA_OPTS``, binds ``native_transport_port`` on 127.0.0.1 and prints
the same readiness line a real server logs. ``FAKE_CASSANDRA_MODE`` selects
misbehaviour:

- ``serve`` (default): bind, announce, accept until SIGINT/SIGTERM;
- ``exit``: print an error and exit with code 3 before binding;
- ``hang``: never become ready (ignores nothing, exits on SIGINT);
- ``bind-failure``: log the "failed to bind port" message and keep running;
- ``stubborn``: serve like ``serve`` but ignore SIGINT/SIGTERM (only SIGKILL stops it).
"""
from __future__ import annotations

import io
import os
import stat
import sys
import tarfile
import zipfile
from pathlib import Path

import yaml

FAKE_SERVER_SCRIPT = '''#!{python}
import os
import signal
import socket
import sys
import time
from urllib.parse import unquote, urlparse

import yaml


def _stop(signum, frame):
    print("INFO  [StorageServiceShutdownHook] Fake Cassandra stopped", flush=True)
    sys.exit(0)


signal.signal(signal.SIGINT, _stop)
signal.signal(signal.SIGTERM, _stop)

props = {{}}
for opt in os.environ.get("JVM_EXTRA_OPTS", "").split():
    if opt.startswith("-D"):
        name, _, value = opt[2:].partition("=")
        props[name] = value

config_file = os.path.join("conf", "cassandra.yaml")
if "cassandra.config" in props:
    config_file = unquote(urlparse(props["cassandra.config"]).path)

mode = os.environ.get("FAKE_CASSANDRA_MODE", "serve")
if mode == "stubborn":
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    signal.signal(signal.SIGTERM, signal.SIG_IGN)
print("INFO  [main] Fake Cassandra args=%s config=%s" % (" ".join(sys.argv[1:]), config_file), flush=True)

if mode == "exit":
    print("ERROR [main] Exception encountered during startup: invalid yaml", file=sys.stderr, flush=True)
    sys.exit(3)
if mode == "hang":
    while True:
        time.sleep(0.1)

with open(config_file, encoding="utf-8") as fh:
    config = yaml.safe_load(fh) or {{}}

if mode == "bind-failure":
    print("ERROR [main] Failed to bind port 9042 on 127.0.0.1.", flush=True)
    while True:
        time.sleep(0.1)

port = int(props.get("cassandra.native_transport_port") or config.get("native_transport_port", 9042))
server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
server.bind(("127.0.0.1", port))
server.listen(16)
server.settimeout(0.1)
print(
    "INFO  [main] Starting listening for CQL clients on localhost/127.0.0.1:%d (unencrypted)..." % port,
    flush=True,
)
while True:
    try:
        conn, _ = server.accept()
        conn.close()
    except socket.timeout:
        pass
'''

DEFAULT_CONFIG = {
    "cluster_name": "Test Cluster",
    "native_transport_port": 9042,
    "storage_port": 7000,
    "ssl_storage_port": 7001,
    "listen_address": "127.0.0.1",
    "seed_provider": [
        {
            "class_name": "org.apache.cassandra.locator.SimpleSeedProvider",
            "parameters": [{"seeds": "127.0.0.1:7000"}],
        }
    ],
}


def write_fake_distribution(root: Path, version: str = "4.1.3") -> Path:
    """Create ``<root>/apache-cassandra-<version>`` and return it."""
    home = Path(root) / f"apache-cassandra-{version}"
    (home / "bin").mkdir(parents=True, exist_ok=True)
    (home / "conf").mkdir(exist_ok=True)
    (home / "lib").mkdir(exist_ok=True)
    (home / "doc").mkdir(exist_ok=True)

    script = home / "bin" / "cassandra"
    script.write_text(FAKE_SERVER_SCRIPT.format(python=sys.executable), encoding="utf-8")
    script.chmod(0o755)
    (home / "conf" / "cassandra.yaml").write_text(yaml.safe_dump(DEFAULT_CONFIG, sort_keys=False), encoding="utf-8")
    (home / "lib" / "apache-cassandra.jar").write_bytes(b"PK\x05\x06" + b"\x00" * 18)
    (home / "doc" / "README.txt").write_text("docs\n", encoding="utf-8")
    return home


def make_tarball(home: Path, archive: Path) -> Path:
    """Pack ``home`` (keeping its directory name and file modes) as ``.tar.gz``."""
    archive.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(archive, "w:gz") as tar:
        tar.add(str(home), arcname=home.name)
    return archive


def make_zip(home: Path, archive: Path) -> Path:
    """Pack ``home`` as a zip, recording Unix modes in ``external_attr``."""
    archive.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(archive, "w") as zf:
        for current, _dirs, files in os.walk(home):
            for name in files:
                path = Path(current) / name
                arcname = str(Path(home.name) / path.relative_to(home))
                info = zipfile.ZipInfo(arcname)
                info.external_attr = (stat.S_IFREG | stat.S_IMODE(path.stat().st_mode)) << 16
                zf.writestr(info, path.read_bytes())
    return archive


def tarball_bytes(home: Path) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        tar.add(str(home), arcname=home.name)
    return buffer.getvalue()


def write_server_script(path: Path, body: str) -> Path:
    """Write an executable Python script (for launcher/readiness tests)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!{sys.executable}\n{body}", encoding="utf-8")
    path.chmod(0o755)
    return path
