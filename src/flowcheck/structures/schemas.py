"""Frozen type-structure records held by the registry."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from flowcheck.constants import HostShape, TypeCategory


@dataclass(frozen=True)
class ValidationRules:
    """Per-type validation toggles.

    ``pattern`` is a regex applied to literal string values only.
    """

    allow_empty: bool = False
    allow_expressions: bool = True
    pattern: str | None = None


@dataclass(frozen=True)
class TypeStructure:
    """Expected shape, rules and canonical examples for a property type."""

    type_id: str
    category: TypeCategory
    host_shape: HostShape
    description: str
    rules: ValidationRules
    example: Any
    examples: tuple[Any, ...] = ()
    notes: tuple[str, ...] = field(default_factory=tuple)

    def all_examples(self) -> list[Any]:
        """Return every example, falling back to the primary one."""
        return list(self.examples) if self.examples else [self.example]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_id,
            "category": self.category.value,
            "host_shape": self.host_shape.value,
            "description": self.description,
            "validation": {
                "allow_empty": self.rules.allow_empty,
                "allow_expressions": self.rules.allow_expressions,
                "pattern": self.rules.pattern,
            },
            "example": self.example,
            "examples": self.all_examples(),
            "notes": list(self.notes),
        }
