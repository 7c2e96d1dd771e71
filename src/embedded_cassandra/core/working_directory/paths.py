from __future__ import annotations

from pathlib import Path, PurePath


def resolve_inside(root: Path, relative: str | PurePath) -> Path:
    """Resolve ``relative`` against ``root``, refusing paths that escape it."""
    base = Path(root).resolve()
    candidate = (base / relative).resolve()
    if candidate != base and base not in candidate.parents:
        raise ValueError(f"Path '{relative}' is outside of the working directory {base}")
    return candidate


__all__ = ["resolve_inside"]
