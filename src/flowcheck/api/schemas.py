"""Request/response schemas for the HTTP API."""

from typing import Any

from pydantic import BaseModel, Field


class APIResponse(BaseModel):
    """Standard response envelope for all API endpoints."""

    success: bool
    data: Any | None = None
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ValidateRequest(BaseModel):
    """Request body for POST /api/validate."""

    node_type: str = Field(min_length=1, max_length=255)
    config: dict[str, Any] = Field(default_factory=dict)
    properties: list[dict[str, Any]] = Field(default_factory=list)
    profile: str | None = None


class BatchValidateRequest(BaseModel):
    """Request body for POST /api/validate/batch."""

    items: list[ValidateRequest] = Field(min_length=1, max_length=500)
    profile: str | None = None


class ScoreRequest(BaseModel):
    """Request body for POST /api/score."""

    field_name: str = Field(min_length=1, max_length=255)
    node_type: str = Field(min_length=1, max_length=255)
    value: Any = None
    threshold: str = Field(
        default="normal", pattern="^(strict|normal|relaxed)$"
    )
