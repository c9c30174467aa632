"""SQL implementation of NodeRepository."""

from collections.abc import Sequence
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from flowcheck.models.node_version import NodeVersion
from flowcheck.structures.registry import get_structure
from flowcheck.structures.schemas import TypeStructure
from flowcheck.versions.comparator import compare_versions
from flowcheck.versions.schemas import VersionMetadata, VersionRecord


def find_declared_type(
    properties: Sequence[dict[str, Any]], property_name: str
) -> TypeStructure | None:
    """Resolve a property's declared type id through the registry."""
    for prop in properties:
        if prop.get("name") == property_name:
            type_id = prop.get("type")
            return get_structure(type_id) if isinstance(type_id, str) else None
    return None


def pick_latest(rows: Sequence[NodeVersion]) -> NodeVersion | None:
    latest: NodeVersion | None = None
    for row in rows:
        if row.is_current_max:
            return row
        if latest is None or compare_versions(row.version, latest.version) > 0:
            latest = row
    return latest


class SqlNodeRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _rows(self, node_type: str) -> list[NodeVersion]:
        result = await self._session.execute(
            select(NodeVersion)
            .where(NodeVersion.node_type == node_type)
            .order_by(NodeVersion.created_at)
        )
        return list(result.scalars().all())

    async def _get(self, node_type: str, version: str) -> NodeVersion | None:
        result = await self._session.execute(
            select(NodeVersion).where(
                NodeVersion.node_type == node_type,
                NodeVersion.version == version,
            )
        )
        return result.scalar_one_or_none()

    async def get_declared_type(
        self, node_type: str, property_name: str
    ) -> TypeStructure | None:
        latest = pick_latest(await self._rows(node_type))
        if latest is None:
            return None
        return find_declared_type(latest.properties_schema, property_name)

    async def get_available_versions(
        self, node_type: str
    ) -> list[VersionRecord]:
        return [row.to_record() for row in await self._rows(node_type)]

    async def get_version_metadata(
        self, node_type: str, version: str
    ) -> VersionMetadata | None:
        row = await self._get(node_type, version)
        return row.to_metadata() if row else None

    async def list_node_types(self) -> list[str]:
        result = await self._session.execute(
            select(NodeVersion.node_type)
            .distinct()
            .order_by(NodeVersion.node_type)
        )
        return list(result.scalars().all())

    async def upsert_version(self, metadata: VersionMetadata) -> NodeVersion:
        """Insert or replace one version; a new current-max demotes others."""
        if metadata.is_current_max:
            await self._session.execute(
                update(NodeVersion)
                .where(
                    NodeVersion.node_type == metadata.node_type,
                    NodeVersion.version != metadata.version,
                )
                .values(is_current_max=False)
            )
        existing = await self._get(metadata.node_type, metadata.version)
        if existing:
            existing.display_name = metadata.display_name
            existing.is_current_max = metadata.is_current_max
            existing.properties_schema = list(metadata.properties_schema)
            existing.minimum_platform_version = (
                metadata.minimum_platform_version
            )
            existing.deprecated_properties = list(
                metadata.deprecated_properties
            )
            existing.added_properties = list(metadata.added_properties)
            await self._session.flush()
            return existing
        row = NodeVersion.from_metadata(metadata)
        self._session.add(row)
        await self._session.flush()
        return row
