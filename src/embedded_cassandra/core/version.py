"""Cassandra version parsing and ordering.

Versions start with ``major.minor[.patch]``; anything after that is kept as a
label (``3.11.10``, ``4.0``, ``4.0-beta4``, ``4.0rc1``). Equality is based on
the raw string, so ``4.0`` and ``4.0.0`` are different versions even though
they describe the same release line.
"""
from __future__ import annotations

import functools
import re
from typing import Optional

from .exceptions import InvalidVersionFormatError

_VERSION_PATTERN = re.compile(r"^(\d+)\.(\d+)(?:\.(\d+))?(.*)$", re.DOTALL)


@functools.total_ordering
class Version:
    """Immutable Cassandra version value."""

    __slots__ = ("_major", "_minor", "_patch", "_label", "_raw")

    def __init__(
        self,
        major: int,
        minor: int,
        patch: Optional[int] = None,
        label: Optional[str] = None,
        *,
        raw: Optional[str] = None,
    ) -> None:
        if major < 0 or minor < 0 or (patch is not None and patch < 0):
            raise InvalidVersionFormatError(
                f"Version components must be non-negative: {major}.{minor}.{patch}"
            )
        if raw is None:
            raw = f"{major}.{minor}"
            if patch is not None:
                raw += f".{patch}"
            if label:
                raw += f"-{label}"
        object.__setattr__(self, "_major", major)
        object.__setattr__(self, "_minor", minor)
        object.__setattr__(self, "_patch", patch)
        object.__setattr__(self, "_label", label or None)
        object.__setattr__(self, "_raw", raw)

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    @classmethod
    def parse(cls, text: str) -> "Version":
        """Parse ``text`` into a :class:`Version`.

        Surrounding whitespace is ignored.

        Raises:
            InvalidVersionFormatError: When ``text`` is not a valid version.
        """
        if not isinstance(text, str):
            raise InvalidVersionFormatError(
                f"Version must be a string, got {type(text).__name__}",
                context={"version": repr(text)},
            )
        raw = text.strip()
        match = _VERSION_PATTERN.match(raw)
        if match is None:
            raise InvalidVersionFormatError(
                f"Version '{text}' is invalid. Expected major.minor[.patch][suffix]",
                context={"version": text},
            )
        major, minor, patch, rest = match.groups()
        return cls(
            int(major),
            int(minor),
            int(patch) if patch is not None else None,
            rest.lstrip("-.") or None,
            raw=raw,
        )

    @property
    def major(self) -> int:
        return self._major

    @property
    def minor(self) -> int:
        return self._minor

    @property
    def patch(self) -> Optional[int]:
        return self._patch

    @property
    def label(self) -> Optional[str]:
        return self._label

    def _sort_key(self) -> tuple:
        # Absent patch sorts before any present patch.
        patch_key = (0, 0) if self._patch is None else (1, self._patch)
        return (self._major, self._minor, patch_key, self._raw)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._raw == other._raw

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        if self._raw == other._raw:
            return False
        return self._sort_key() < other._sort_key()

    def __hash__(self) -> int:
        return hash(self._raw)

    def __str__(self) -> str:
        return self._raw

    def __repr__(self) -> str:
        return f"Version({self._raw!r})"

    def __reduce__(self):
        return (Version.parse, (self._raw,))


def compare(a: Version, b: Version) -> int:
    """Return a negative number, zero, or a positive number as ``a`` is less than, equal to, or greater than ``b``."""
    if a == b:
        return 0
    return -1 if a < b else 1


__all__ = ["Version", "compare"]
