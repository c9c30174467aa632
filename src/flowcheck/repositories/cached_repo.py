"""Caching decorator for any NodeRepository.

Only ``get_available_versions`` is cached; it is the lookup the
version service repeats several times per plan.
"""

from __future__ import annotations

import logging

from flowcheck.repositories.protocols import NodeRepository
from flowcheck.structures.schemas import TypeStructure
from flowcheck.versions.cache import VersionCache
from flowcheck.versions.schemas import VersionMetadata, VersionRecord

logger = logging.getLogger(__name__)


class CachedNodeRepository:
    def __init__(
        self,
        inner: NodeRepository,
        cache: VersionCache | None = None,
    ) -> None:
        self._inner = inner
        self._cache = cache if cache is not None else VersionCache()

    @property
    def cache(self) -> VersionCache:
        return self._cache

    async def get_declared_type(
        self, node_type: str, property_name: str
    ) -> TypeStructure | None:
        return await self._inner.get_declared_type(node_type, property_name)

    async def get_available_versions(
        self, node_type: str
    ) -> list[VersionRecord]:
        cached = self._cache.get(node_type)
        if cached is not None:
            return cached
        versions = await self._inner.get_available_versions(node_type)
        self._cache.put(node_type, versions)
        logger.debug(
            "event=versions_cached node_type=%s count=%d",
            node_type,
            len(versions),
        )
        return versions

    async def get_version_metadata(
        self, node_type: str, version: str
    ) -> VersionMetadata | None:
        return await self._inner.get_version_metadata(node_type, version)

    def clear_cache(self, node_type: str | None = None) -> None:
        self._cache.clear(node_type)
