"""Seed provider values for multi-instance setups."""
from __future__ import annotations

from typing import Any, Dict, List

SIMPLE_SEED_PROVIDER = "org.apache.cassandra.locator.SimpleSeedProvider"


def simple_seed_provider(*seeds: str) -> List[Dict[str, Any]]:
    """``seed_provider`` config value listing ``seeds`` (``host`` or ``host:port``)."""
    return [
        {
            "class_name": SIMPLE_SEED_PROVIDER,
            "parameters": [{"seeds": ",".join(str(seed) for seed in seeds)}],
        }
    ]


__all__ = ["SIMPLE_SEED_PROVIDER", "simple_seed_provider"]
