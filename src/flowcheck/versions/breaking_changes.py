"""Breaking-change registry and detector.

The registry is curated data (``data/breaking_changes.yaml``). The
detector merges registry entries with changes found by diffing the
stored ``properties_schema`` of two versions.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from flowcheck.constants import (
    ANY_NODE_TYPE,
    ChangeSource,
    ChangeType,
    Severity,
)
from flowcheck.errors import DataFileError
from flowcheck.repositories.protocols import NodeRepository
from flowcheck.versions.comparator import compare_versions, sort_versions
from flowcheck.versions.schemas import (
    BreakingChange,
    DetectedChange,
    MigrationStrategy,
    VersionUpgradeAnalysis,
)

logger = logging.getLogger(__name__)

_SEVERITY_ORDER: dict[Severity, int] = {
    Severity.HIGH: 0,
    Severity.MEDIUM: 1,
    Severity.LOW: 2,
}


class BreakingChangeRegistry:
    """Queryable collection of curated change entries."""

    def __init__(self, changes: Iterable[BreakingChange]) -> None:
        self._changes = tuple(changes)

    def __len__(self) -> int:
        return len(self._changes)

    def changes_for(
        self,
        node_type: str,
        from_version: str,
        to_version: str,
        *,
        breaking_only: bool = False,
    ) -> list[BreakingChange]:
        """Entries for ``node_type`` that lie inside the upgrade span."""
        return [
            c
            for c in self._changes
            if c.node_type in (node_type, ANY_NODE_TYPE)
            and compare_versions(c.from_version, from_version) >= 0
            and compare_versions(c.to_version, to_version) <= 0
            and (c.is_breaking or not breaking_only)
        ]

    def has_breaking_changes(
        self, node_type: str, from_version: str, to_version: str
    ) -> bool:
        return bool(
            self.changes_for(
                node_type, from_version, to_version, breaking_only=True
            )
        )

    def migration_hints(
        self, node_type: str, from_version: str, to_version: str
    ) -> list[str]:
        return [
            c.migration_hint
            for c in self.changes_for(node_type, from_version, to_version)
        ]

    def nodes_with_migrations(self) -> list[str]:
        return sorted(
            {
                c.node_type
                for c in self._changes
                if c.node_type != ANY_NODE_TYPE
            }
        )

    def tracked_versions(self, node_type: str) -> list[str]:
        versions: set[str] = set()
        for c in self._changes:
            if c.node_type in (node_type, ANY_NODE_TYPE):
                versions.update((c.from_version, c.to_version))
        return sort_versions(versions)


def load_registry(path: Path | None = None) -> BreakingChangeRegistry:
    """Load the registry from ``path`` or the packaged defaults.

    Raises ``DataFileError`` when an entry is malformed.
    """
    if path is None:
        return _default_registry()
    if not path.exists():
        msg = f"Breaking-change registry not found: {path}"
        raise FileNotFoundError(msg)
    registry = _parse_registry(
        yaml.safe_load(path.read_text(encoding="utf-8"))
    )
    logger.info(
        "event=breaking_changes_loaded path=%s entries=%d",
        path,
        len(registry),
    )
    return registry


@lru_cache(maxsize=1)
def _default_registry() -> BreakingChangeRegistry:
    text = (
        resources.files("flowcheck")
        .joinpath("data/breaking_changes.yaml")
        .read_text(encoding="utf-8")
    )
    return _parse_registry(yaml.safe_load(text))


def _parse_registry(raw: Any) -> BreakingChangeRegistry:
    if not isinstance(raw, Mapping) or not isinstance(
        raw.get("changes"), list
    ):
        msg = "Breaking-change registry must have a 'changes' list"
        raise DataFileError(msg)
    try:
        changes = [BreakingChange.model_validate(e) for e in raw["changes"]]
    except ValidationError as exc:
        msg = f"Malformed breaking-change entry: {exc}"
        raise DataFileError(msg) from exc
    for change in changes:
        # Validates both versions; raises InvalidVersionError.
        compare_versions(change.from_version, change.to_version)
    return BreakingChangeRegistry(changes)


def _flatten_properties(
    properties: Sequence[Any], prefix: str = ""
) -> dict[str, Mapping[str, Any]]:
    flat: dict[str, Mapping[str, Any]] = {}
    for prop in properties:
        if not isinstance(prop, Mapping):
            continue
        name = prop.get("name") or prop.get("displayName")
        if not name:
            continue
        path = f"{prefix}.{name}" if prefix else str(name)
        flat[path] = prop
        options = prop.get("options")
        if isinstance(options, list):
            flat.update(_flatten_properties(options, path))
    return flat


class BreakingChangeDetector:
    """Find changes between two versions of a node type."""

    def __init__(
        self,
        repository: NodeRepository,
        registry: BreakingChangeRegistry | None = None,
    ) -> None:
        self._repo = repository
        self._registry = (
            registry if registry is not None else _default_registry()
        )

    def has_breaking_changes(
        self, node_type: str, from_version: str, to_version: str
    ) -> bool:
        """Registry-only check; cheap and synchronous."""
        return self._registry.has_breaking_changes(
            node_type, from_version, to_version
        )

    def get_changed_properties(
        self, node_type: str, from_version: str, to_version: str
    ) -> list[str]:
        return [
            c.property_name
            for c in self._registry.changes_for(
                node_type, from_version, to_version
            )
        ]

    async def analyze_version_upgrade(
        self, node_type: str, from_version: str, to_version: str
    ) -> VersionUpgradeAnalysis:
        registry_changes = [
            DetectedChange(
                property_name=c.property_name,
                change_type=c.change_type,
                is_breaking=c.is_breaking,
                old_value=c.old_value,
                new_value=c.new_value,
                migration_hint=c.migration_hint,
                auto_migratable=c.auto_migratable,
                migration_strategy=c.migration_strategy,
                severity=c.severity,
                source=ChangeSource.REGISTRY,
            )
            for c in self._registry.changes_for(
                node_type, from_version, to_version
            )
        ]
        dynamic_changes = await self._detect_dynamic_changes(
            node_type, from_version, to_version
        )
        changes = _merge_changes(registry_changes, dynamic_changes)

        analysis = VersionUpgradeAnalysis(
            node_type=node_type,
            from_version=from_version,
            to_version=to_version,
            has_breaking_changes=any(c.is_breaking for c in changes),
            changes=changes,
            auto_migratable_count=sum(
                1 for c in changes if c.auto_migratable
            ),
            manual_required_count=sum(
                1 for c in changes if not c.auto_migratable
            ),
            overall_severity=_overall_severity(changes),
            recommendations=_recommendations(changes),
        )
        logger.debug(
            "event=upgrade_analyzed node_type=%s from=%s to=%s "
            "changes=%d breaking=%d",
            node_type,
            from_version,
            to_version,
            len(changes),
            analysis.breaking_count,
        )
        return analysis

    async def _detect_dynamic_changes(
        self, node_type: str, from_version: str, to_version: str
    ) -> list[DetectedChange]:
        old = await self._repo.get_version_metadata(node_type, from_version)
        new = await self._repo.get_version_metadata(node_type, to_version)
        if old is None or new is None:
            return []

        old_props = _flatten_properties(old.properties_schema)
        new_props = _flatten_properties(new.properties_schema)
        changes: list[DetectedChange] = []

        for name, prop in new_props.items():
            if name in old_props:
                continue
            required = prop.get("required") is True
            changes.append(
                DetectedChange(
                    property_name=name,
                    change_type=ChangeType.ADDED,
                    is_breaking=required,
                    new_value=prop.get("type", "unknown"),
                    migration_hint=(
                        f'Property "{name}" is now required in '
                        f"v{to_version}. Provide a value to prevent "
                        "validation errors."
                        if required
                        else f'Property "{name}" was added in '
                        f"v{to_version}. It is optional and safe to "
                        "ignore."
                    ),
                    auto_migratable=not required,
                    migration_strategy=None
                    if required
                    else MigrationStrategy(
                        type="add_property",
                        default_value=prop.get("default"),
                    ),
                    severity=Severity.HIGH if required else Severity.LOW,
                    source=ChangeSource.DYNAMIC,
                )
            )

        for name, prop in old_props.items():
            if name in new_props:
                continue
            changes.append(
                DetectedChange(
                    property_name=name,
                    change_type=ChangeType.REMOVED,
                    is_breaking=True,
                    old_value=prop.get("type", "unknown"),
                    migration_hint=(
                        f'Property "{name}" was removed in v{to_version}. '
                        "Remove it from the configuration."
                    ),
                    auto_migratable=True,
                    migration_strategy=MigrationStrategy(
                        type="remove_property"
                    ),
                    severity=Severity.MEDIUM,
                    source=ChangeSource.DYNAMIC,
                )
            )

        for name, prop in new_props.items():
            previous = old_props.get(name)
            if previous is None:
                continue
            was_required = previous.get("required") is True
            now_required = prop.get("required") is True
            if was_required == now_required:
                continue
            changes.append(
                DetectedChange(
                    property_name=name,
                    change_type=ChangeType.REQUIREMENT_CHANGED,
                    is_breaking=now_required,
                    old_value="required" if was_required else "optional",
                    new_value="required" if now_required else "optional",
                    migration_hint=(
                        f'Property "{name}" is now required in '
                        f"v{to_version}. Make sure a value is provided."
                        if now_required
                        else f'Property "{name}" is now optional in '
                        f"v{to_version}."
                    ),
                    auto_migratable=False,
                    severity=Severity.HIGH if now_required else Severity.LOW,
                    source=ChangeSource.DYNAMIC,
                )
            )
        return changes


def _merge_changes(
    registry_changes: list[DetectedChange],
    dynamic_changes: list[DetectedChange],
) -> list[DetectedChange]:
    """Registry entries win over dynamic ones for the same property/type.

    The sort is stable, so discovery order holds within a severity.
    """
    seen = {(c.property_name, c.change_type) for c in registry_changes}
    merged = list(registry_changes)
    for change in dynamic_changes:
        key = (change.property_name, change.change_type)
        if key not in seen:
            seen.add(key)
            merged.append(change)
    return sorted(merged, key=lambda c: _SEVERITY_ORDER[c.severity])


def _overall_severity(changes: Sequence[DetectedChange]) -> Severity:
    if any(c.severity == Severity.HIGH for c in changes):
        return Severity.HIGH
    if any(c.severity == Severity.MEDIUM for c in changes):
        return Severity.MEDIUM
    return Severity.LOW


def _recommendations(changes: Sequence[DetectedChange]) -> list[str]:
    breaking = [c for c in changes if c.is_breaking]
    auto = [c for c in changes if c.auto_migratable]
    manual = [c for c in changes if not c.auto_migratable]

    recommendations: list[str] = []
    if breaking:
        recommendations.append(
            f"{len(breaking)} breaking change(s) detected. Review "
            "carefully before applying."
        )
    else:
        recommendations.append(
            "No breaking changes detected. This upgrade should be safe."
        )
    if auto:
        recommendations.append(
            f"{len(auto)} change(s) can be migrated automatically."
        )
    if manual:
        recommendations.append(
            f"{len(manual)} change(s) require manual intervention."
        )
        recommendations.extend(
            f"  - {c.property_name}: {c.migration_hint}" for c in manual
        )
    return recommendations
