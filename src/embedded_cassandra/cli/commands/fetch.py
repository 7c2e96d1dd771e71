"""
embedded-cassandra fetch command.

SUMMARY: Download an Apache Cassandra distribution into the local cache
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from embedded_cassandra.cli._args import add_json_flag
from embedded_cassandra.cli._output import OutputFormatter
from embedded_cassandra.core.artifact import ArtifactProvider
from embedded_cassandra.core.exceptions import EmbeddedCassandraError
from embedded_cassandra.core.version import Version

SUMMARY = "Download an Apache Cassandra distribution into the local cache"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("version", type=str, help="Cassandra version, e.g. 4.1.3")
    parser.add_argument(
        "--destination",
        type=Path,
        default=None,
        help="Directory for the archive (default: <download.cache_directory>/<version>)",
    )
    add_json_flag(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    try:
        version = Version.parse(args.version)
        archive = ArtifactProvider().resolve(version, args.destination)
    except EmbeddedCassandraError as e:
        formatter.error(e, error_code="fetch_error")
        return 1
    except KeyboardInterrupt:
        return 130

    formatter.success({"version": str(version), "path": str(archive)}, str(archive))
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    sys.exit(main(parser.parse_args()))
