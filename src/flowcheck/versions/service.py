"""Node version analysis and upgrade-path planning.

The service owns no state. Version lists come from the repository
(cached there if the repository caches), and change analysis comes from
the breaking-change collaborator. Collaborator errors propagate.
"""

from __future__ import annotations

import asyncio
import logging

from flowcheck.constants import (
    EFFORT_HIGH_BREAKING,
    EFFORT_HIGH_STEPS,
    EFFORT_MEDIUM_BREAKING,
    EFFORT_MEDIUM_STEPS,
    LARGE_VERSION_GAP,
    Severity,
)
from flowcheck.errors import InvalidVersionError
from flowcheck.repositories.protocols import (
    BreakingChangeSource,
    CachingRepository,
    NodeRepository,
)
from flowcheck.versions.breaking_changes import (
    BreakingChangeDetector,
    BreakingChangeRegistry,
)
from flowcheck.versions.comparator import (
    calculate_version_gap,
    compare_versions,
    max_version,
    parse_version,
    sort_versions,
)
from flowcheck.versions.schemas import (
    UpgradePlan,
    UpgradeStep,
    VersionAnalysis,
    VersionMetadata,
    VersionRecord,
)

logger = logging.getLogger(__name__)


def estimate_effort(total_breaking: int, step_count: int) -> Severity:
    if total_breaking > EFFORT_HIGH_BREAKING or step_count > EFFORT_HIGH_STEPS:
        return Severity.HIGH
    if (
        total_breaking > EFFORT_MEDIUM_BREAKING
        or step_count > EFFORT_MEDIUM_STEPS
    ):
        return Severity.MEDIUM
    return Severity.LOW


def create_version_service(
    repository: NodeRepository,
    registry: BreakingChangeRegistry | None = None,
) -> NodeVersionService:
    """Wire a service to the default breaking-change detector."""
    return NodeVersionService(
        repository, BreakingChangeDetector(repository, registry)
    )


class NodeVersionService:
    def __init__(
        self,
        repository: NodeRepository,
        detector: BreakingChangeSource,
    ) -> None:
        self._repo = repository
        self._detector = detector

    async def get_available_versions(
        self, node_type: str
    ) -> list[VersionRecord]:
        """Stored versions whose version string parses.

        Malformed records are skipped and logged rather than raised.
        """
        usable: list[VersionRecord] = []
        for record in await self._repo.get_available_versions(node_type):
            try:
                parse_version(record.version)
            except InvalidVersionError:
                logger.warning(
                    "event=version_skipped node_type=%s version=%r",
                    node_type,
                    record.version,
                )
                continue
            usable.append(record)
        return usable

    async def get_latest_version(self, node_type: str) -> str | None:
        """Explicit current-max first, else the highest known version."""
        versions = await self.get_available_versions(node_type)
        for record in versions:
            if record.is_current_max:
                return record.version
        return max_version(v.version for v in versions)

    async def version_exists(self, node_type: str, version: str) -> bool:
        versions = await self.get_available_versions(node_type)
        return any(
            compare_versions(v.version, version) == 0 for v in versions
        )

    async def get_version_metadata(
        self, node_type: str, version: str
    ) -> VersionMetadata | None:
        return await self._repo.get_version_metadata(node_type, version)

    def clear_cache(self, node_type: str | None = None) -> None:
        if isinstance(self._repo, CachingRepository):
            self._repo.clear_cache(node_type)

    async def analyze_version(
        self, node_type: str, current_version: str
    ) -> VersionAnalysis:
        latest = await self.get_latest_version(node_type)
        if latest is None:
            return VersionAnalysis(
                node_type=node_type,
                current_version=current_version,
                latest_version=current_version,
                is_outdated=False,
                version_gap=0,
                has_breaking_changes=False,
                recommend_upgrade=False,
                confidence=Severity.HIGH,
                reason=(
                    "No version information available. Using current "
                    "version."
                ),
            )

        if compare_versions(current_version, latest) >= 0:
            return VersionAnalysis(
                node_type=node_type,
                current_version=current_version,
                latest_version=latest,
                is_outdated=False,
                version_gap=0,
                has_breaking_changes=False,
                recommend_upgrade=False,
                confidence=Severity.HIGH,
                reason="Node is already at the latest version.",
            )

        gap = calculate_version_gap(current_version, latest)
        breaking = self._detector.has_breaking_changes(
            node_type, current_version, latest
        )
        confidence = Severity.HIGH
        reason = f"Version {latest} available. "
        if breaking:
            confidence = Severity.MEDIUM
            reason += "Contains breaking changes. Review before upgrading."
        else:
            reason += "Safe to upgrade (no breaking changes detected)."
        if gap > LARGE_VERSION_GAP:
            confidence = Severity.LOW
            reason += (
                f" Version gap is large ({gap}). Consider an incremental "
                "upgrade."
            )

        return VersionAnalysis(
            node_type=node_type,
            current_version=current_version,
            latest_version=latest,
            is_outdated=True,
            version_gap=gap,
            has_breaking_changes=breaking,
            recommend_upgrade=True,
            confidence=confidence,
            reason=reason,
        )

    async def suggest_upgrade_path(
        self,
        node_type: str,
        current_version: str,
        *,
        timeout: float | None = None,
    ) -> UpgradePlan | None:
        """Plan an upgrade to the latest version.

        Returns None when no version data exists or the node is already
        current. ``timeout`` bounds the whole plan; on expiry
        ``TimeoutError`` propagates.
        """
        if timeout is None:
            return await self._plan(node_type, current_version)
        return await asyncio.wait_for(
            self._plan(node_type, current_version), timeout=timeout
        )

    async def _plan(
        self, node_type: str, current_version: str
    ) -> UpgradePlan | None:
        latest = await self.get_latest_version(node_type)
        if latest is None or compare_versions(current_version, latest) >= 0:
            return None

        versions = await self.get_available_versions(node_type)
        intermediates: list[str] = []
        for version in sort_versions(
            v.version
            for v in versions
            if compare_versions(v.version, current_version) > 0
            and compare_versions(v.version, latest) < 0
        ):
            # "1.5" and "1.5.0" are one stop
            if intermediates and compare_versions(
                version, intermediates[-1]
            ) == 0:
                continue
            intermediates.append(version)

        analysis = await self._detector.analyze_version_upgrade(
            node_type, current_version, latest
        )
        gap = calculate_version_gap(current_version, latest)
        direct = gap <= 1 or not analysis.has_breaking_changes

        steps: list[UpgradeStep] = []
        if direct or not intermediates:
            steps.append(
                UpgradeStep(
                    from_version=current_version,
                    to_version=latest,
                    breaking_changes=analysis.breaking_count,
                    migration_hints=analysis.recommendations,
                )
            )
        else:
            stops = [current_version, *intermediates, latest]
            # One awaited analysis per step, in plan order.
            for step_from, step_to in zip(stops, stops[1:]):
                step = await self._detector.analyze_version_upgrade(
                    node_type, step_from, step_to
                )
                steps.append(
                    UpgradeStep(
                        from_version=step_from,
                        to_version=step_to,
                        breaking_changes=step.breaking_count,
                        migration_hints=step.recommendations,
                    )
                )

        total_breaking = sum(s.breaking_changes for s in steps)
        plan = UpgradePlan(
            node_type=node_type,
            from_version=current_version,
            to_version=latest,
            direct=direct,
            intermediate_versions=intermediates,
            total_breaking_changes=total_breaking,
            auto_migratable_changes=analysis.auto_migratable_count,
            manual_required_changes=analysis.manual_required_count,
            estimated_effort=estimate_effort(total_breaking, len(steps)),
            steps=steps,
        )
        logger.info(
            "event=upgrade_planned node_type=%s from=%s to=%s direct=%s "
            "steps=%d effort=%s",
            node_type,
            current_version,
            latest,
            direct,
            len(steps),
            plan.estimated_effort,
        )
        return plan
