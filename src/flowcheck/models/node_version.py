"""NodeVersion ORM model — one stored schema per node type and version."""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from flowcheck.models.base import Base
from flowcheck.versions.schemas import VersionMetadata, VersionRecord


class NodeVersion(Base):
    __tablename__ = "node_versions"
    __table_args__ = (
        UniqueConstraint("node_type", "version", name="uq_node_version"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    node_type: Mapped[str] = mapped_column(String(255), index=True)
    version: Mapped[str] = mapped_column(String(32))
    display_name: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    is_current_max: Mapped[bool] = mapped_column(default=False)
    properties_schema: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, default=list
    )
    minimum_platform_version: Mapped[str | None] = mapped_column(
        String(32), nullable=True
    )
    deprecated_properties: Mapped[list[str]] = mapped_column(
        JSON, default=list
    )
    added_properties: Mapped[list[str]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        onupdate=lambda: datetime.now(UTC),
    )

    @classmethod
    def from_metadata(cls, metadata: VersionMetadata) -> "NodeVersion":
        return cls(
            node_type=metadata.node_type,
            version=metadata.version,
            display_name=metadata.display_name,
            is_current_max=metadata.is_current_max,
            properties_schema=list(metadata.properties_schema),
            minimum_platform_version=metadata.minimum_platform_version,
            deprecated_properties=list(metadata.deprecated_properties),
            added_properties=list(metadata.added_properties),
        )

    def to_record(self) -> VersionRecord:
        return VersionRecord(
            version=self.version, is_current_max=self.is_current_max
        )

    def to_metadata(self) -> VersionMetadata:
        return VersionMetadata(
            node_type=self.node_type,
            version=self.version,
            display_name=self.display_name,
            is_current_max=self.is_current_max,
            properties_schema=list(self.properties_schema or []),
            minimum_platform_version=self.minimum_platform_version,
            deprecated_properties=list(self.deprecated_properties or []),
            added_properties=list(self.added_properties or []),
        )
