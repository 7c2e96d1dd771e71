"""
embedded-cassandra run command.

SUMMARY: Start an Apache Cassandra instance and keep it running until Ctrl-C
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from embedded_cassandra.cli._args import add_json_flag, parse_property, properties_to_dict
from embedded_cassandra.cli._output import OutputFormatter
from embedded_cassandra.core.artifact import LocalArtifactProvider
from embedded_cassandra.core.exceptions import EmbeddedCassandraError, LifecycleInterruptedError
from embedded_cassandra.core.lifecycle import CassandraBuilder, LifecycleController
from embedded_cassandra.core.utils import interrupts
from embedded_cassandra.core.working_directory import delete_all, do_nothing

SUMMARY = "Start an Apache Cassandra instance and keep it running until Ctrl-C"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("version", type=str, help="Cassandra version, e.g. 4.1.3")
    parser.add_argument(
        "--working-directory",
        type=Path,
        default=None,
        help="Working directory (default: a new temporary directory)",
    )
    parser.add_argument(
        "--archive",
        type=Path,
        default=None,
        help="Use this local archive or distribution directory instead of downloading",
    )
    parser.add_argument(
        "--config-property",
        dest="config_properties",
        action="append",
        type=parse_property,
        metavar="NAME=VALUE",
        help="cassandra.yaml property (dotted names address nested keys); repeatable",
    )
    parser.add_argument(
        "--system-property",
        dest="system_properties",
        action="append",
        type=parse_property,
        metavar="NAME=VALUE",
        help="JVM system property; repeatable",
    )
    parser.add_argument(
        "--jvm-option",
        dest="jvm_options",
        action="append",
        default=[],
        metavar="OPTION",
        help="Extra JVM option, e.g. --jvm-option=-Xmx1g; repeatable",
    )
    parser.add_argument("--startup-timeout", type=float, default=None, help="Seconds to wait for readiness")
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds instead of waiting for Ctrl-C",
    )
    parser.add_argument(
        "--keep-working-directory",
        action="store_true",
        help="Leave the working directory untouched on stop",
    )
    add_json_flag(parser)


def _build(args: argparse.Namespace) -> LifecycleController:
    builder = (
        CassandraBuilder()
        .version(args.version)
        .config_properties(properties_to_dict(args.config_properties))
        .system_properties(properties_to_dict(args.system_properties))
        .add_jvm_options(*args.jvm_options)
        .register_shutdown_hook(True)
    )
    if args.keep_working_directory:
        builder.working_directory_destroyer(do_nothing())
    elif args.working_directory is None:
        # A temporary directory nobody else knows about.
        builder.working_directory_destroyer(delete_all())
    if args.working_directory is not None:
        builder.working_directory(args.working_directory)
    if args.archive is not None:
        builder.artifact_provider(LocalArtifactProvider(args.archive))
    if args.startup_timeout is not None:
        builder.startup_timeout(args.startup_timeout)
    return builder.build()


def _wait(duration: float | None) -> None:
    deadline = None if duration is None else time.monotonic() + duration
    while deadline is None or time.monotonic() < deadline:
        remaining = 1.0 if deadline is None else min(1.0, deadline - time.monotonic())
        interrupts.sleep(max(remaining, 0.0))


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    try:
        cassandra = _build(args)
    except (EmbeddedCassandraError, ValueError) as e:
        formatter.error(e, error_code="run_error")
        return 1

    exit_code = 0
    try:
        cassandra.start()
        settings = cassandra.get_settings()
        formatter.success(
            settings.to_dict(),
            f"Apache Cassandra {settings.version} is listening on {settings.address}:{settings.port} "
            f"(working directory: {settings.working_directory})",
            status="started",
        )
        sys.stdout.flush()
        _wait(args.duration)
    except LifecycleInterruptedError:
        interrupts.clear_interrupt()
        exit_code = 130
    except KeyboardInterrupt:
        exit_code = 130
    except EmbeddedCassandraError as e:
        formatter.error(e, error_code="run_error")
        exit_code = 1

    try:
        cassandra.stop()
    except EmbeddedCassandraError as e:
        formatter.error(e, error_code="stop_error")
        return 1
    return exit_code


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    sys.exit(main(parser.parse_args()))
