"""Config validation, locator scoring and type structure routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from flowcheck.api.dependencies import get_heuristics, get_settings
from flowcheck.api.schemas import (
    APIResponse,
    BatchValidateRequest,
    ScoreRequest,
    ValidateRequest,
)
from flowcheck.config import Settings
from flowcheck.errors import UnknownProfileError
from flowcheck.structures.registry import all_structures, get_structure
from flowcheck.validation.config_validator import (
    validate_batch,
    validate_config,
)
from flowcheck.validation.scorer import (
    LocatorHeuristics,
    score_resource_locator,
    should_apply_recommendation,
)

router = APIRouter(prefix="/api", tags=["validation"])


@router.post("/validate")
async def validate(
    body: ValidateRequest,
    settings: Settings = Depends(get_settings),
    heuristics: LocatorHeuristics | None = Depends(get_heuristics),
) -> APIResponse:
    """Validate one node configuration against its properties."""
    try:
        result = validate_config(
            body.node_type,
            body.config,
            body.properties,
            body.profile or settings.default_profile,
            heuristics=heuristics,
        )
    except UnknownProfileError as exc:
        return APIResponse(success=False, error=str(exc))
    return APIResponse(
        success=True,
        data=result.model_dump(mode="json"),
        metadata=result.summary(),
    )


@router.post("/validate/batch")
async def validate_many(
    body: BatchValidateRequest,
    settings: Settings = Depends(get_settings),
    heuristics: LocatorHeuristics | None = Depends(get_heuristics),
) -> APIResponse:
    """Validate several configurations under one profile."""
    try:
        results = validate_batch(
            [(i.node_type, i.config, i.properties) for i in body.items],
            body.profile or settings.default_profile,
            heuristics=heuristics,
        )
    except UnknownProfileError as exc:
        return APIResponse(success=False, error=str(exc))
    return APIResponse(
        success=True,
        data=[r.model_dump(mode="json") for r in results],
        metadata={
            "total": len(results),
            "invalid": sum(1 for r in results if not r.valid),
        },
    )


@router.post("/score")
async def score(
    body: ScoreRequest,
    heuristics: LocatorHeuristics | None = Depends(get_heuristics),
) -> APIResponse:
    """Score a field as a resource-locator candidate."""
    result = score_resource_locator(
        body.field_name, body.node_type, body.value, heuristics
    )
    return APIResponse(
        success=True,
        data=result.to_dict(),
        metadata={
            "threshold": body.threshold,
            "apply": should_apply_recommendation(
                result.value, body.threshold
            ),
        },
    )


@router.get("/types")
async def list_types() -> APIResponse:
    """List every known property type structure."""
    return APIResponse(
        success=True,
        data=[s.to_dict() for s in all_structures().values()],
    )


@router.get("/types/{type_id}")
async def get_type(type_id: str) -> APIResponse:
    """Describe a single property type."""
    structure = get_structure(type_id)
    if structure is None:
        return APIResponse(
            success=False,
            error=f"Unknown property type '{type_id}'",
        )
    return APIResponse(success=True, data=structure.to_dict())
