"""Node version analysis and upgrade planning routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from flowcheck.api.dependencies import get_settings, get_version_service
from flowcheck.api.schemas import APIResponse
from flowcheck.config import Settings
from flowcheck.errors import InvalidVersionError
from flowcheck.versions.comparator import sort_versions
from flowcheck.versions.service import NodeVersionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/versions", tags=["versions"])


@router.get("/{node_type}")
async def list_versions(
    node_type: str,
    service: NodeVersionService = Depends(get_version_service),
) -> APIResponse:
    """Known versions of a node type, ascending."""
    latest = await service.get_latest_version(node_type)
    if latest is None:
        return APIResponse(
            success=False,
            error=f"No version data for '{node_type}'",
        )
    records = await service.get_available_versions(node_type)
    return APIResponse(
        success=True,
        data=sort_versions(r.version for r in records),
        metadata={"latest": latest},
    )


@router.get("/{node_type}/analyze")
async def analyze(
    node_type: str,
    current_version: str = Query(min_length=1, max_length=32),
    service: NodeVersionService = Depends(get_version_service),
) -> APIResponse:
    """Is this node version outdated, and how safe is upgrading?"""
    try:
        analysis = await service.analyze_version(node_type, current_version)
    except InvalidVersionError as exc:
        return APIResponse(success=False, error=str(exc))
    return APIResponse(success=True, data=analysis.model_dump(mode="json"))


@router.get("/{node_type}/upgrade-path")
async def upgrade_path(
    node_type: str,
    current_version: str = Query(min_length=1, max_length=32),
    service: NodeVersionService = Depends(get_version_service),
    settings: Settings = Depends(get_settings),
) -> APIResponse:
    """Plan the upgrade from ``current_version`` to the latest."""
    try:
        plan = await service.suggest_upgrade_path(
            node_type,
            current_version,
            timeout=settings.upgrade_plan_timeout_seconds,
        )
    except InvalidVersionError as exc:
        return APIResponse(success=False, error=str(exc))
    except TimeoutError:
        logger.warning(
            "event=upgrade_plan_timeout node_type=%s from=%s",
            node_type,
            current_version,
        )
        return APIResponse(
            success=False, error="Upgrade planning timed out"
        )
    if plan is None:
        return APIResponse(
            success=True,
            data=None,
            metadata={"message": "No upgrade needed"},
        )
    return APIResponse(success=True, data=plan.model_dump(mode="json"))
