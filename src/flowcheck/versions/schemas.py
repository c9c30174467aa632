"""Pydantic models for version analysis and upgrade planning."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from flowcheck.constants import ChangeSource, ChangeType, Severity


class VersionRecord(BaseModel):
    """One known schema version of a node type."""

    version: str
    is_current_max: bool = False


class VersionMetadata(BaseModel):
    """Stored schema for one node type at one version."""

    node_type: str
    version: str
    display_name: str | None = None
    is_current_max: bool = False
    properties_schema: list[dict[str, Any]] = Field(
        default_factory=lambda: list[dict[str, Any]]()
    )
    minimum_platform_version: str | None = None
    deprecated_properties: list[str] = Field(
        default_factory=lambda: list[str]()
    )
    added_properties: list[str] = Field(
        default_factory=lambda: list[str]()
    )


class MigrationStrategy(BaseModel):
    """How an automated migration would apply a change."""

    type: str  # "add_property", "remove_property", "rename_property"
    default_value: Any = None
    source_property: str | None = None
    target_property: str | None = None


class BreakingChange(BaseModel):
    """A curated registry entry describing a change between versions."""

    node_type: str
    from_version: str
    to_version: str
    property_name: str
    change_type: ChangeType
    is_breaking: bool = False
    old_value: Any = None
    new_value: Any = None
    migration_hint: str
    auto_migratable: bool = False
    migration_strategy: MigrationStrategy | None = None
    severity: Severity = Severity.LOW


class DetectedChange(BaseModel):
    """A change found for a concrete upgrade, from either source."""

    property_name: str
    change_type: ChangeType
    is_breaking: bool
    old_value: Any = None
    new_value: Any = None
    migration_hint: str
    auto_migratable: bool
    migration_strategy: MigrationStrategy | None = None
    severity: Severity
    source: ChangeSource


class VersionUpgradeAnalysis(BaseModel):
    """All changes between two versions of a node type."""

    node_type: str
    from_version: str
    to_version: str
    has_breaking_changes: bool
    changes: list[DetectedChange] = Field(
        default_factory=lambda: list[DetectedChange]()
    )
    auto_migratable_count: int = 0
    manual_required_count: int = 0
    overall_severity: Severity = Severity.LOW
    recommendations: list[str] = Field(
        default_factory=lambda: list[str]()
    )

    @property
    def breaking_count(self) -> int:
        return sum(1 for c in self.changes if c.is_breaking)


class VersionAnalysis(BaseModel):
    """Whether a node is outdated and how safe upgrading looks."""

    node_type: str
    current_version: str
    latest_version: str
    is_outdated: bool
    version_gap: int = Field(ge=0)
    has_breaking_changes: bool
    recommend_upgrade: bool
    confidence: Severity
    reason: str


class UpgradeStep(BaseModel):
    from_version: str
    to_version: str
    breaking_changes: int = 0
    migration_hints: list[str] = Field(
        default_factory=lambda: list[str]()
    )


class UpgradePlan(BaseModel):
    """Ordered upgrade steps from the current to the latest version.

    ``steps`` always chain contiguously from ``from_version`` to
    ``to_version``.
    """

    node_type: str
    from_version: str
    to_version: str
    direct: bool
    intermediate_versions: list[str] = Field(
        default_factory=lambda: list[str]()
    )
    total_breaking_changes: int = 0
    auto_migratable_changes: int = 0
    manual_required_changes: int = 0
    estimated_effort: Severity = Severity.LOW
    steps: list[UpgradeStep] = Field(
        default_factory=lambda: list[UpgradeStep]()
    )
