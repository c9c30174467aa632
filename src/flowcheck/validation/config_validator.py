"""Validate a node configuration against its declared properties.

The orchestrator walks the declared property list, skips properties
hidden by ``displayOptions``, enforces required values, and dispatches
each present value to the complex-type validators or the primitive
check. Every issue is collected; nothing short-circuits.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from flowcheck.constants import (
    ComplexType,
    IssueCategory,
    IssueKind,
)
from flowcheck.structures.registry import get_structure, is_complex_type
from flowcheck.validation.expressions import (
    contains_expression,
    needs_expression_prefix,
)
from flowcheck.validation.profiles import ProfileConfig, get_profile
from flowcheck.validation.schemas import ValidationIssue, ValidationResult
from flowcheck.validation.scorer import (
    LocatorHeuristics,
    score_resource_locator,
    should_apply_recommendation,
)
from flowcheck.validation.validators import (
    validate_complex,
    validate_primitive,
    validate_resource_locator,
)
from flowcheck.validation.visibility import is_property_visible

logger = logging.getLogger(__name__)

_MAX_WALK_DEPTH = 32
_LOCATOR_MARKERS = ("mode", "__rl")

ProfileArg = ProfileConfig | str | None


def validate_config(
    node_type: str,
    config: Mapping[str, Any],
    properties: Sequence[Mapping[str, Any]],
    profile: ProfileArg = None,
    *,
    heuristics: LocatorHeuristics | None = None,
) -> ValidationResult:
    """Validate ``config`` for ``node_type`` under a profile.

    Raises ``TypeError`` when ``config`` is not a mapping or
    ``properties`` is not a list, and ``UnknownProfileError`` for an
    unrecognised profile name.
    """
    if not isinstance(config, Mapping):
        msg = f"config must be a mapping, got {type(config).__name__}"
        raise TypeError(msg)
    if not isinstance(properties, Sequence) or isinstance(
        properties, (str, bytes)
    ):
        msg = f"properties must be a list, got {type(properties).__name__}"
        raise TypeError(msg)

    resolved = get_profile(profile)
    issues: list[ValidationIssue] = []
    visible: list[str] = []
    hidden: list[str] = []

    for prop in properties:
        name = prop.get("name") if isinstance(prop, Mapping) else None
        if not isinstance(name, str) or not name:
            logger.debug(
                "event=property_skipped node_type=%s reason=no_name",
                node_type,
            )
            continue
        if not is_property_visible(prop, config):
            hidden.append(name)
            continue
        visible.append(name)
        issues.extend(
            _validate_property(
                node_type, prop, name, config.get(name), resolved, heuristics
            )
        )

    if not resolved.best_practice_warnings:
        issues = [
            i for i in issues if i.category != IssueCategory.BEST_PRACTICE
        ]
    errors = [i for i in issues if i.kind == IssueKind.ERROR]
    warnings = [i for i in issues if i.kind == IssueKind.WARNING]

    logger.debug(
        "event=config_validated node_type=%s profile=%s errors=%d "
        "warnings=%d hidden=%d",
        node_type,
        resolved.name,
        len(errors),
        len(warnings),
        len(hidden),
    )
    return ValidationResult(
        node_type=node_type,
        valid=not errors,
        errors=errors,
        warnings=warnings,
        profile=resolved.name.value,
        visible_properties=visible,
        hidden_properties=hidden,
    )


def validate_batch(
    items: Iterable[
        tuple[str, Mapping[str, Any], Sequence[Mapping[str, Any]]]
    ],
    profile: ProfileArg = None,
    *,
    heuristics: LocatorHeuristics | None = None,
) -> list[ValidationResult]:
    """Validate several ``(node_type, config, properties)`` triples.

    Results come back in input order under one shared profile.
    """
    resolved = get_profile(profile)
    return [
        validate_config(
            node_type, config, properties, resolved, heuristics=heuristics
        )
        for node_type, config, properties in items
    ]


def _validate_property(
    node_type: str,
    prop: Mapping[str, Any],
    name: str,
    value: Any,
    profile: ProfileConfig,
    heuristics: LocatorHeuristics | None,
) -> list[ValidationIssue]:
    type_id = prop.get("type")
    structure = get_structure(type_id) if isinstance(type_id, str) else None
    required = prop.get("required") is True
    label = prop.get("displayName") or name

    if value is None:
        if required and (structure is None or not structure.rules.allow_empty):
            return [
                ValidationIssue(
                    kind=IssueKind.ERROR,
                    category=IssueCategory.MISSING_REQUIRED,
                    property=name,
                    message=f"Required property '{label}' is missing",
                    fix=f"Add a value for '{name}'",
                )
            ]
        return []

    if required and isinstance(value, str) and not value.strip():
        return [
            ValidationIssue(
                kind=IssueKind.ERROR,
                category=IssueCategory.MISSING_REQUIRED,
                property=name,
                message=f"Required property '{label}' cannot be empty",
                fix=f"Provide a non-empty value for '{name}'",
            )
        ]

    issues: list[ValidationIssue] = []
    if profile.expression_warnings:
        issues.extend(_prefix_warnings(value, name))

    if structure is None:
        if profile.unknown_property_type is not None:
            issues.append(
                ValidationIssue(
                    kind=profile.unknown_property_type,
                    category=IssueCategory.UNKNOWN_TYPE,
                    property=name,
                    message=(
                        f"Unknown property type {type_id!r} for '{name}'; "
                        "value was not checked"
                    ),
                )
            )
        return issues

    if is_complex_type(structure.type_id):
        issues.extend(
            validate_complex(
                ComplexType(structure.type_id), value, name, profile
            )
        )
        return issues

    if _looks_like_locator(value) and _locator_confident(
        node_type, name, value.get("value"), profile, heuristics
    ):
        issues.extend(validate_resource_locator(value, name, profile))
        return issues

    issues.extend(validate_primitive(value, prop, structure, name, profile))
    if (
        profile.best_practice_warnings
        and contains_expression(value)
        and _locator_confident(node_type, name, value, profile, heuristics)
    ):
        issues.append(
            ValidationIssue(
                kind=IssueKind.WARNING,
                category=IssueCategory.BEST_PRACTICE,
                property=name,
                message=(
                    f"'{name}' looks like a resource reference; the "
                    "resource locator format is preferred"
                ),
                fix=f'Use {{"__rl": true, "mode": "id", "value": {value!r}}}',
            )
        )
    return issues


def _looks_like_locator(value: Any) -> bool:
    return isinstance(value, Mapping) and any(
        marker in value for marker in _LOCATOR_MARKERS
    )


def _locator_confident(
    node_type: str,
    name: str,
    value: Any,
    profile: ProfileConfig,
    heuristics: LocatorHeuristics | None,
) -> bool:
    result = score_resource_locator(name, node_type, value, heuristics)
    applied = should_apply_recommendation(
        result.value, profile.locator_threshold
    )
    logger.debug(
        "event=locator_scored node_type=%s field=%s score=%.3f applied=%s",
        node_type,
        name,
        result.value,
        applied,
    )
    return applied


def _prefix_warnings(
    value: Any, path: str, depth: int = 0
) -> list[ValidationIssue]:
    """Flag ``{{ }}`` templates missing the ``=`` marker, recursively."""
    if depth > _MAX_WALK_DEPTH:
        return []
    if needs_expression_prefix(value):
        return [
            ValidationIssue(
                kind=IssueKind.WARNING,
                category=IssueCategory.EXPRESSION,
                property=path,
                message=(
                    f"'{path}' contains {{{{ }}}} but no leading '='; it "
                    "will be treated as literal text"
                ),
                fix=f"Use '={value}'",
            )
        ]
    issues: list[ValidationIssue] = []
    if isinstance(value, Mapping):
        for key, child in value.items():
            issues.extend(_prefix_warnings(child, f"{path}.{key}", depth + 1))
    elif isinstance(value, list):
        for index, child in enumerate(value):
            issues.extend(
                _prefix_warnings(child, f"{path}[{index}]", depth + 1)
            )
    return issues
