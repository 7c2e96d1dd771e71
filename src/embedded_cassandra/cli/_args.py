"""Argument helpers shared by CLI commands."""
from __future__ import annotations

import argparse
from typing import Any, Dict, Iterable, Tuple

import yaml


def add_json_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )


def parse_property(text: str) -> Tuple[str, Any]:
    """Parse ``name=value``; the value is read as a YAML scalar (``9042`` -> int)."""
    name, sep, raw = text.partition("=")
    name = name.strip()
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got '{text}'")
    try:
        value = yaml.safe_load(raw) if raw.strip() else ""
    except yaml.YAMLError:
        value = raw
    return name, value


def properties_to_dict(pairs: Iterable[Tuple[str, Any]] | None) -> Dict[str, Any]:
    return {name: value for name, value in (pairs or [])}


__all__ = ["add_json_flag", "parse_property", "properties_to_dict"]
