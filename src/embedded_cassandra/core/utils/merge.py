"""Dictionary merge helpers shared by configuration loading and YAML rewriting."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, MutableMapping


def deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge dictionaries without mutating inputs.

    Lists use :func:`merge_arrays` semantics.

    Example:
        >>> base = {"a": 1, "b": {"c": 2}}
        >>> override = {"b": {"d": 3}}
        >>> deep_merge(base, override)
        {'a': 1, 'b': {'c': 2, 'd': 3}}
    """
    result: Dict[str, Any] = dict(base)
    for key, value in (override or {}).items():
        if key in result:
            if isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = deep_merge(result[key], value)
            elif isinstance(result[key], list) and isinstance(value, list):
                result[key] = merge_arrays(result[key], value)
            else:
                result[key] = value
        else:
            result[key] = value
    return result


def merge_arrays(base: List[Any], override: List[Any]) -> List[Any]:
    """Merge arrays with override semantics.

    A leading ``"+"`` element appends the rest of ``override`` to ``base``; a
    leading ``"="`` (or no marker) replaces ``base``.

    Example:
        >>> merge_arrays([1, 2], ["+", 3])
        [1, 2, 3]
    """
    if not override:
        return base
    first = override[0]
    if isinstance(first, str):
        if first == "+":
            return [*base, *override[1:]]
        if first == "=":
            return list(override[1:])
    return list(override)


def set_dotted(target: MutableMapping[str, Any], dotted_key: str, value: Any) -> None:
    """Assign ``value`` at ``dotted_key`` (``a.b.c``), creating nested dicts.

    Nested mappings on the path are copied before they are written to, so
    mappings shared with the caller are left untouched.

    Raises:
        ValueError: The key has an empty segment, or a segment on the path
            holds a scalar that cannot have nested properties.
    """
    parts = dotted_key.split(".")
    if any(not part for part in parts):
        raise ValueError(f"Invalid property name: '{dotted_key}'")
    cur: MutableMapping[str, Any] = target
    for index, part in enumerate(parts[:-1]):
        existing = cur.get(part)
        if existing is None:
            existing = {}
        elif isinstance(existing, Mapping):
            existing = dict(existing)
        else:
            parent = ".".join(parts[: index + 1])
            raise ValueError(
                f"Property '{dotted_key}' cannot be set: '{parent}' is a "
                f"{type(existing).__name__} and cannot have nested properties"
            )
        cur[part] = existing
        cur = existing
    cur[parts[-1]] = value


__all__ = ["deep_merge", "merge_arrays", "set_dotted"]
