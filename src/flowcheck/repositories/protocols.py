"""Protocol-based repository interfaces.

SQL implementations satisfy these protocols structurally (no inheritance).
Test doubles can be plain classes or mocks matching the same signature.
"""

from typing import Protocol, runtime_checkable

from flowcheck.structures.schemas import TypeStructure
from flowcheck.versions.schemas import (
    VersionMetadata,
    VersionRecord,
    VersionUpgradeAnalysis,
)


class NodeRepository(Protocol):
    async def get_declared_type(
        self, node_type: str, property_name: str
    ) -> TypeStructure | None: ...
    async def get_available_versions(
        self, node_type: str
    ) -> list[VersionRecord]: ...
    async def get_version_metadata(
        self, node_type: str, version: str
    ) -> VersionMetadata | None: ...


@runtime_checkable
class CachingRepository(Protocol):
    def clear_cache(self, node_type: str | None = None) -> None: ...


class BreakingChangeSource(Protocol):
    def has_breaking_changes(
        self, node_type: str, from_version: str, to_version: str
    ) -> bool: ...
    async def analyze_version_upgrade(
        self, node_type: str, from_version: str, to_version: str
    ) -> VersionUpgradeAnalysis: ...
