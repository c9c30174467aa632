"""TTL cache for per-node-type version lists.

Entries are replaced whole and expire whole; there is no partial
update. The clock is injected so tests can advance time directly.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from flowcheck.constants import DEFAULT_VERSION_CACHE_TTL_SECONDS
from flowcheck.versions.schemas import VersionRecord


@dataclass(frozen=True)
class _Entry:
    versions: tuple[VersionRecord, ...]
    stored_at: float


class VersionCache:
    def __init__(
        self,
        ttl_seconds: float = DEFAULT_VERSION_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            msg = f"ttl_seconds must be positive, got {ttl_seconds}"
            raise ValueError(msg)
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, node_type: str) -> list[VersionRecord] | None:
        """Cached versions, or None when absent or expired."""
        entry = self._entries.get(node_type)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self._ttl:
            del self._entries[node_type]
            return None
        return list(entry.versions)

    def put(self, node_type: str, versions: list[VersionRecord]) -> None:
        self._entries[node_type] = _Entry(
            versions=tuple(versions), stored_at=self._clock()
        )

    def clear(self, node_type: str | None = None) -> None:
        """Drop one node type, or everything when ``node_type`` is None."""
        if node_type is None:
            self._entries.clear()
        else:
            self._entries.pop(node_type, None)
