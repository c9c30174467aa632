"""In-memory fakes for testing.

Dict-backed NodeRepository plus a scripted breaking-change source.
No SQLAlchemy, no I/O — instant operations for unit tests.
"""

from __future__ import annotations

from flowcheck.repositories.node_repo import find_declared_type
from flowcheck.structures.schemas import TypeStructure
from flowcheck.versions.comparator import compare_versions
from flowcheck.versions.schemas import (
    VersionMetadata,
    VersionRecord,
    VersionUpgradeAnalysis,
)


class FakeNodeRepository:
    """Dict-backed NodeRepository for testing.

    ``calls`` counts ``get_available_versions`` lookups so caching
    layers can be asserted against.
    """

    def __init__(self) -> None:
        self._store: dict[str, dict[str, VersionMetadata]] = {}
        self.calls = 0

    def add(self, metadata: VersionMetadata) -> VersionMetadata:
        versions = self._store.setdefault(metadata.node_type, {})
        if metadata.is_current_max:
            for version, existing in versions.items():
                if existing.is_current_max and version != metadata.version:
                    versions[version] = existing.model_copy(
                        update={"is_current_max": False}
                    )
        versions[metadata.version] = metadata
        return metadata

    def add_versions(
        self,
        node_type: str,
        *versions: str,
        current_max: str | None = None,
    ) -> None:
        """Shorthand: register bare versions with empty schemas."""
        for version in versions:
            self.add(
                VersionMetadata(
                    node_type=node_type,
                    version=version,
                    is_current_max=version == current_max,
                )
            )

    async def get_declared_type(
        self, node_type: str, property_name: str
    ) -> TypeStructure | None:
        versions = list(self._store.get(node_type, {}).values())
        if not versions:
            return None
        latest = next((v for v in versions if v.is_current_max), None)
        if latest is None:
            latest = versions[0]
            for candidate in versions[1:]:
                if compare_versions(candidate.version, latest.version) > 0:
                    latest = candidate
        return find_declared_type(latest.properties_schema, property_name)

    async def get_available_versions(
        self, node_type: str
    ) -> list[VersionRecord]:
        self.calls += 1
        return [
            VersionRecord(version=m.version, is_current_max=m.is_current_max)
            for m in self._store.get(node_type, {}).values()
        ]

    async def get_version_metadata(
        self, node_type: str, version: str
    ) -> VersionMetadata | None:
        return self._store.get(node_type, {}).get(version)


class FakeBreakingChangeSource:
    """Scripted BreakingChangeSource for planner tests.

    ``breaking`` answers ``has_breaking_changes``; ``analyses`` maps
    ``(from, to)`` to a canned analysis (default: no changes). Every
    analysed span is appended to ``analyzed`` in call order.
    """

    def __init__(
        self,
        *,
        breaking: bool = False,
        analyses: dict[tuple[str, str], VersionUpgradeAnalysis] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.breaking = breaking
        self.analyses = analyses or {}
        self.error = error
        self.analyzed: list[tuple[str, str]] = []

    def has_breaking_changes(
        self, node_type: str, from_version: str, to_version: str
    ) -> bool:
        return self.breaking

    async def analyze_version_upgrade(
        self, node_type: str, from_version: str, to_version: str
    ) -> VersionUpgradeAnalysis:
        self.analyzed.append((from_version, to_version))
        if self.error is not None:
            raise self.error
        canned = self.analyses.get((from_version, to_version))
        if canned is not None:
            return canned
        return VersionUpgradeAnalysis(
            node_type=node_type,
            from_version=from_version,
            to_version=to_version,
            has_breaking_changes=False,
        )
