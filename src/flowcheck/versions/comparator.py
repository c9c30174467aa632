"""Total ordering and distance over dotted version strings.

Versions are ``.``-separated non-negative integers of any length;
missing trailing segments compare as 0, so ``"1"`` == ``"1.0.0"``.
"""

from __future__ import annotations

from collections.abc import Iterable
from functools import cmp_to_key
from itertools import zip_longest

from flowcheck.errors import InvalidVersionError


def parse_version(version: str) -> tuple[int, ...]:
    """Split a version into integer segments.

    Raises ``InvalidVersionError`` for empty or non-numeric segments.
    """
    if not isinstance(version, str) or not version.strip():
        raise InvalidVersionError(str(version))
    segments: list[int] = []
    for part in version.strip().split("."):
        if not (part.isascii() and part.isdigit()):
            raise InvalidVersionError(version)
        segments.append(int(part))
    return tuple(segments)


def compare_versions(a: str, b: str) -> int:
    """Return -1, 0 or 1 as ``a`` is lower, equal or higher than ``b``."""
    for x, y in zip_longest(parse_version(a), parse_version(b), fillvalue=0):
        if x < y:
            return -1
        if x > y:
            return 1
    return 0


def calculate_version_gap(a: str, b: str) -> int:
    """Sum of absolute per-segment differences.

    This is a distance heuristic, not a count of published releases:
    ``1.9 -> 2.0`` yields 10.
    """
    return sum(
        abs(x - y)
        for x, y in zip_longest(
            parse_version(a), parse_version(b), fillvalue=0
        )
    )


def sort_versions(
    versions: Iterable[str], *, reverse: bool = False
) -> list[str]:
    return sorted(
        versions, key=cmp_to_key(compare_versions), reverse=reverse
    )


def max_version(versions: Iterable[str]) -> str | None:
    """Highest version, or None for an empty input."""
    best: str | None = None
    for version in versions:
        parse_version(version)
        if best is None or compare_versions(version, best) > 0:
            best = version
    return best
