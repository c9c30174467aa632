"""Pydantic models for validation output."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from flowcheck.constants import IssueCategory, IssueKind


class ValidationIssue(BaseModel):
    """A single problem found in a node configuration."""

    kind: IssueKind
    category: IssueCategory
    property: str
    message: str
    fix: str | None = None


class ValidationResult(BaseModel):
    """Verdict for one node configuration.

    ``valid`` is derived from ``errors`` at construction; warnings never
    affect it.
    """

    node_type: str
    valid: bool
    errors: list[ValidationIssue] = Field(
        default_factory=lambda: list[ValidationIssue]()
    )
    warnings: list[ValidationIssue] = Field(
        default_factory=lambda: list[ValidationIssue]()
    )
    profile: str
    visible_properties: list[str] = Field(
        default_factory=lambda: list[str]()
    )
    hidden_properties: list[str] = Field(
        default_factory=lambda: list[str]()
    )

    def summary(self) -> dict[str, Any]:
        return {
            "node_type": self.node_type,
            "valid": self.valid,
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "profile": self.profile,
        }
