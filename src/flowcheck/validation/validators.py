"""Structural validators for complex property types.

Every validator takes ``(value, path, profile)`` and returns the issues
it found, in discovery order. Validators never raise on bad input; a
malformed value is reported, not rejected.

Expression values (``=`` prefix or ``{{ }}`` span) are opaque: shape
checks are skipped for them at every level.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping, Sequence
from typing import Any, assert_never

from flowcheck.constants import (
    ComplexType,
    HostShape,
    IssueCategory,
    IssueKind,
)
from flowcheck.structures.registry import get_example, host_shape_of
from flowcheck.structures.schemas import TypeStructure
from flowcheck.validation.expressions import should_skip_literal_validation
from flowcheck.validation.profiles import ProfileConfig
from flowcheck.validation.schemas import ValidationIssue

# ── Filter ─────────────────────────────────────────────────

COMBINATORS = ("and", "or")

COMMON_UNARY_OPERATIONS = frozenset(
    {"exists", "notExists", "empty", "notEmpty", "isEmpty", "isNotEmpty"}
)
UNARY_OPERATIONS = COMMON_UNARY_OPERATIONS | {"true", "false", "isNumeric"}

OPERATIONS_BY_TYPE: dict[str, frozenset[str]] = {
    "string": COMMON_UNARY_OPERATIONS | {
        "equals", "notEquals", "contains", "notContains",
        "startsWith", "notStartsWith", "endsWith", "notEndsWith",
        "regex", "notRegex", "isNumeric",
    },
    "number": COMMON_UNARY_OPERATIONS | {
        "equals", "notEquals", "gt", "lt", "gte", "lte",
    },
    "dateTime": COMMON_UNARY_OPERATIONS | {
        "equals", "notEquals", "after", "before",
        "afterOrEquals", "beforeOrEquals",
    },
    "boolean": COMMON_UNARY_OPERATIONS | {
        "true", "false", "equals", "notEquals",
    },
    "array": COMMON_UNARY_OPERATIONS | {
        "contains", "notContains", "lengthEquals", "lengthNotEquals",
        "lengthGt", "lengthLt", "lengthGte", "lengthLte",
    },
    "object": COMMON_UNARY_OPERATIONS,
}

# ── Resource mapper / locator / assignments ────────────────

MAPPING_MODES = ("defineBelow", "autoMapInputData")
LOCATOR_MODES = ("id", "url", "list", "name")
ASSIGNMENT_TYPES = ("string", "number", "boolean", "array", "object")

_URL_RE = re.compile(r"^[a-z][a-z0-9+.-]*://\S+$", re.IGNORECASE)
_SCALARS = (str, int, float, bool, type(None))
_FIX_OPTION_LIMIT = 10


def _issue(
    kind: IssueKind,
    category: IssueCategory,
    path: str,
    message: str,
    fix: str | None = None,
) -> ValidationIssue:
    return ValidationIssue(
        kind=kind, category=category, property=path, message=message, fix=fix
    )


def _error(
    category: IssueCategory, path: str, message: str, fix: str | None = None
) -> ValidationIssue:
    return _issue(IssueKind.ERROR, category, path, message, fix)


def _warning(
    category: IssueCategory, path: str, message: str, fix: str | None = None
) -> ValidationIssue:
    return _issue(IssueKind.WARNING, category, path, message, fix)


def _is_list(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(
        value, (str, bytes)
    )


def _shape_name(value: Any) -> str:
    if value is None:
        return "null"
    shape = host_shape_of(value)
    return type(value).__name__ if shape == HostShape.ANY else shape.value


def _expression_passthrough(
    value: Any, path: str, profile: ProfileConfig
) -> list[ValidationIssue] | None:
    """Return issues for a whole-value expression, or None for literals."""
    if not should_skip_literal_validation(value):
        return None
    if not profile.expression_warnings:
        return []
    return [
        _warning(
            IssueCategory.EXPRESSION,
            path,
            f"'{path}' is an expression; its structure can only be "
            "checked at runtime",
        )
    ]


def _format_choices(choices: Sequence[Any]) -> str:
    shown = ", ".join(repr(c) for c in choices[:_FIX_OPTION_LIMIT])
    if len(choices) > _FIX_OPTION_LIMIT:
        shown += f", ... ({len(choices) - _FIX_OPTION_LIMIT} more)"
    return shown


# ── Complex validators ─────────────────────────────────────


def validate_filter(
    value: Any, path: str, profile: ProfileConfig
) -> list[ValidationIssue]:
    """Check a ``{combinator, conditions}`` filter value."""
    passthrough = _expression_passthrough(value, path, profile)
    if passthrough is not None:
        return passthrough
    if not isinstance(value, Mapping):
        return [
            _error(
                IssueCategory.INVALID_TYPE,
                path,
                f"Filter must be an object, got {_shape_name(value)}",
                fix=f"Use the shape {json.dumps(get_example('filter'))}",
            )
        ]

    issues: list[ValidationIssue] = []
    combinator = value.get("combinator")
    if combinator is None:
        issues.append(
            _error(
                IssueCategory.MISSING_REQUIRED,
                f"{path}.combinator",
                "Filter is missing 'combinator'",
                fix='Set combinator to "and" or "or"',
            )
        )
    elif combinator not in COMBINATORS:
        issues.append(
            _error(
                IssueCategory.INVALID_VALUE,
                f"{path}.combinator",
                f"Invalid combinator {combinator!r}",
                fix='Use "and" or "or"',
            )
        )

    conditions = value.get("conditions")
    if "conditions" not in value:
        issues.append(
            _error(
                IssueCategory.MISSING_REQUIRED,
                f"{path}.conditions",
                "Filter is missing 'conditions'",
                fix="Add a conditions array (it may be empty)",
            )
        )
    elif not _is_list(conditions):
        issues.append(
            _error(
                IssueCategory.INVALID_TYPE,
                f"{path}.conditions",
                f"'conditions' must be an array, got "
                f"{_shape_name(conditions)}",
            )
        )
    else:
        for index, condition in enumerate(conditions):
            issues.extend(
                _validate_condition(
                    condition, f"{path}.conditions[{index}]", profile
                )
            )

    if "options" in value:
        issues.extend(
            _validate_filter_options(value["options"], path, profile)
        )
    return issues


def _validate_condition(
    condition: Any, path: str, profile: ProfileConfig
) -> list[ValidationIssue]:
    if not isinstance(condition, Mapping):
        return [
            _error(
                IssueCategory.INVALID_TYPE,
                path,
                f"Condition must be an object, got {_shape_name(condition)}",
            )
        ]

    operator = condition.get("operator")
    if not isinstance(operator, Mapping):
        return [
            _error(
                IssueCategory.MISSING_REQUIRED,
                f"{path}.operator",
                "Condition is missing an 'operator' object",
                fix='Add operator: {"type": "string", "operation": "equals"}',
            )
        ]

    issues: list[ValidationIssue] = []
    op_path = f"{path}.operator"
    op_type = operator.get("type")
    operation = operator.get("operation")

    if op_type is None:
        issues.append(
            _error(
                IssueCategory.MISSING_REQUIRED,
                f"{op_path}.type",
                "Operator is missing 'type'",
                fix=f"Use one of: {', '.join(OPERATIONS_BY_TYPE)}",
            )
        )
    if operation is None:
        issues.append(
            _error(
                IssueCategory.MISSING_REQUIRED,
                f"{op_path}.operation",
                "Operator is missing 'operation'",
            )
        )

    if op_type is not None:
        allowed = OPERATIONS_BY_TYPE.get(str(op_type))
        if allowed is None:
            if profile.unknown_operator_type is not None:
                issues.append(
                    _issue(
                        profile.unknown_operator_type,
                        IssueCategory.INVALID_VALUE,
                        f"{op_path}.type",
                        f"Unknown operator type {op_type!r}",
                        fix=f"Use one of: {', '.join(OPERATIONS_BY_TYPE)}",
                    )
                )
        elif operation is not None and operation not in allowed:
            issues.append(
                _error(
                    IssueCategory.INVALID_VALUE,
                    f"{op_path}.operation",
                    f"Operation {operation!r} is not valid for operator "
                    f"type {op_type!r}",
                    fix=f"Valid operations: {', '.join(sorted(allowed))}",
                )
            )

    if isinstance(operation, str):
        single_value = operator.get("singleValue") is True
        if operation in UNARY_OPERATIONS and not single_value:
            issues.append(
                _error(
                    IssueCategory.INVALID_CONFIGURATION,
                    f"{op_path}.singleValue",
                    f"Unary operation {operation!r} requires "
                    "singleValue: true",
                    fix="Set operator.singleValue to true",
                )
            )
        elif operation not in UNARY_OPERATIONS and single_value:
            issues.append(
                _error(
                    IssueCategory.INVALID_CONFIGURATION,
                    f"{op_path}.singleValue",
                    f"Binary operation {operation!r} must not set "
                    "singleValue",
                    fix="Remove operator.singleValue",
                )
            )
        elif (
            operation in UNARY_OPERATIONS
            and profile.best_practice_warnings
            and condition.get("rightValue") not in (None, "")
        ):
            issues.append(
                _warning(
                    IssueCategory.BEST_PRACTICE,
                    f"{path}.rightValue",
                    f"rightValue is ignored by unary operation "
                    f"{operation!r}",
                    fix="Remove rightValue",
                )
            )
    return issues


def _validate_filter_options(
    options: Any, path: str, profile: ProfileConfig
) -> list[ValidationIssue]:
    opt_path = f"{path}.options"
    if not isinstance(options, Mapping):
        return [
            _error(
                IssueCategory.INVALID_TYPE,
                opt_path,
                f"Filter options must be an object, got "
                f"{_shape_name(options)}",
            )
        ]
    if not profile.secondary_checks:
        return []
    issues: list[ValidationIssue] = []
    case_sensitive = options.get("caseSensitive")
    if case_sensitive is not None and not isinstance(case_sensitive, bool):
        issues.append(
            _warning(
                IssueCategory.INVALID_TYPE,
                f"{opt_path}.caseSensitive",
                "caseSensitive should be a boolean",
            )
        )
    type_validation = options.get("typeValidation")
    if type_validation is not None and type_validation not in (
        "strict",
        "loose",
    ):
        issues.append(
            _warning(
                IssueCategory.INVALID_VALUE,
                f"{opt_path}.typeValidation",
                f"Unknown typeValidation {type_validation!r}",
                fix='Use "strict" or "loose"',
            )
        )
    return issues


def validate_resource_mapper(
    value: Any, path: str, profile: ProfileConfig
) -> list[ValidationIssue]:
    """Check a ``{mappingMode, value}`` resource mapper."""
    passthrough = _expression_passthrough(value, path, profile)
    if passthrough is not None:
        return passthrough
    if not isinstance(value, Mapping):
        return [
            _error(
                IssueCategory.INVALID_TYPE,
                path,
                f"Resource mapper must be an object, got "
                f"{_shape_name(value)}",
            )
        ]

    mode = value.get("mappingMode")
    if mode is None:
        return [
            _error(
                IssueCategory.MISSING_REQUIRED,
                f"{path}.mappingMode",
                "Resource mapper is missing 'mappingMode'",
                fix=f"Use one of: {', '.join(MAPPING_MODES)}",
            )
        ]
    if mode not in MAPPING_MODES:
        return [
            _error(
                IssueCategory.INVALID_VALUE,
                f"{path}.mappingMode",
                f"Invalid mappingMode {mode!r}",
                fix=f"Use one of: {', '.join(MAPPING_MODES)}",
            )
        ]

    mapped = value.get("value")
    value_path = f"{path}.value"
    issues: list[ValidationIssue] = []
    if mode == "autoMapInputData":
        if mapped is not None and not isinstance(mapped, Mapping):
            issues.append(
                _error(
                    IssueCategory.INVALID_TYPE,
                    value_path,
                    "Auto-mapped resource mapper value must be an object "
                    "or null",
                )
            )
        elif mapped and profile.best_practice_warnings:
            issues.append(
                _warning(
                    IssueCategory.BEST_PRACTICE,
                    value_path,
                    "Explicit values are ignored in autoMapInputData mode",
                    fix='Switch mappingMode to "defineBelow" or clear value',
                )
            )
        return issues

    if not isinstance(mapped, Mapping):
        return [
            _error(
                IssueCategory.INVALID_CONFIGURATION,
                value_path,
                "defineBelow mode requires an object of column values",
                fix='Set value to e.g. {"name": "={{ $json.name }}"}',
            )
        ]
    if profile.secondary_checks:
        for column, entry in mapped.items():
            if not isinstance(entry, _SCALARS):
                issues.append(
                    _warning(
                        IssueCategory.INVALID_TYPE,
                        f"{value_path}.{column}",
                        f"Column '{column}' should be a literal or an "
                        f"expression, got {_shape_name(entry)}",
                    )
                )
    return issues


def validate_assignment_collection(
    value: Any, path: str, profile: ProfileConfig
) -> list[ValidationIssue]:
    """Check an ``{assignments: [...]}`` collection."""
    passthrough = _expression_passthrough(value, path, profile)
    if passthrough is not None:
        return passthrough
    if not isinstance(value, Mapping):
        return [
            _error(
                IssueCategory.INVALID_TYPE,
                path,
                f"Assignment collection must be an object, got "
                f"{_shape_name(value)}",
            )
        ]
    if "assignments" not in value:
        return [
            _error(
                IssueCategory.MISSING_REQUIRED,
                f"{path}.assignments",
                "Assignment collection is missing 'assignments'",
                fix="Add an assignments array",
            )
        ]
    assignments = value["assignments"]
    if not _is_list(assignments):
        return [
            _error(
                IssueCategory.INVALID_TYPE,
                f"{path}.assignments",
                f"'assignments' must be an array, got "
                f"{_shape_name(assignments)}",
            )
        ]

    issues: list[ValidationIssue] = []
    seen: set[str] = set()
    for index, item in enumerate(assignments):
        item_path = f"{path}.assignments[{index}]"
        if not isinstance(item, Mapping):
            issues.append(
                _error(
                    IssueCategory.INVALID_TYPE,
                    item_path,
                    f"Assignment must be an object, got {_shape_name(item)}",
                )
            )
            continue

        name = item.get("name")
        if not isinstance(name, str) or not name:
            issues.append(
                _error(
                    IssueCategory.MISSING_REQUIRED,
                    f"{item_path}.name",
                    "Assignment is missing 'name'",
                )
            )
        elif name in seen and profile.best_practice_warnings:
            issues.append(
                _warning(
                    IssueCategory.BEST_PRACTICE,
                    f"{item_path}.name",
                    f"Duplicate assignment name '{name}'; the last one "
                    "wins",
                )
            )
        else:
            seen.add(name)

        assign_type = item.get("type")
        if assign_type is not None and assign_type not in ASSIGNMENT_TYPES:
            issues.append(
                _error(
                    IssueCategory.INVALID_VALUE,
                    f"{item_path}.type",
                    f"Invalid assignment type {assign_type!r}",
                    fix=f"Use one of: {', '.join(ASSIGNMENT_TYPES)}",
                )
            )
        if not profile.secondary_checks:
            continue
        if "id" not in item:
            issues.append(
                _warning(
                    IssueCategory.MISSING_REQUIRED,
                    f"{item_path}.id",
                    "Assignment has no 'id'",
                )
            )
        if assign_type is None:
            issues.append(
                _warning(
                    IssueCategory.MISSING_REQUIRED,
                    f"{item_path}.type",
                    "Assignment has no 'type'; it defaults to string",
                )
            )
        elif assign_type in ASSIGNMENT_TYPES and "value" in item:
            item_value = item["value"]
            actual = host_shape_of(item_value)
            if (
                not should_skip_literal_validation(item_value)
                and item_value is not None
                and actual != HostShape(assign_type)
            ):
                issues.append(
                    _warning(
                        IssueCategory.INVALID_TYPE,
                        f"{item_path}.value",
                        f"Value is {actual.value} but assignment type is "
                        f"{assign_type}",
                    )
                )
    return issues


def validate_resource_locator(
    value: Any, path: str, profile: ProfileConfig
) -> list[ValidationIssue]:
    """Check a ``{mode, value}`` resource locator."""
    passthrough = _expression_passthrough(value, path, profile)
    if passthrough is not None:
        return passthrough
    if not isinstance(value, Mapping):
        return [
            _error(
                IssueCategory.INVALID_TYPE,
                path,
                f"Resource locator must be an object, got "
                f"{_shape_name(value)}",
                fix=(
                    "Use the shape "
                    f"{json.dumps(get_example('resourceLocator'))}"
                ),
            )
        ]

    issues: list[ValidationIssue] = []
    mode = value.get("mode")
    if mode is None:
        issues.append(
            _error(
                IssueCategory.MISSING_REQUIRED,
                f"{path}.mode",
                "Resource locator is missing 'mode'",
                fix=f"Use one of: {', '.join(LOCATOR_MODES)}",
            )
        )
    elif mode not in LOCATOR_MODES:
        issues.append(
            _error(
                IssueCategory.INVALID_VALUE,
                f"{path}.mode",
                f"Invalid resource locator mode {mode!r}",
                fix=f"Use one of: {', '.join(LOCATOR_MODES)}",
            )
        )

    if "value" not in value:
        issues.append(
            _error(
                IssueCategory.MISSING_REQUIRED,
                f"{path}.value",
                "Resource locator is missing 'value'",
            )
        )
        return issues

    locator_value = value["value"]
    if mode in LOCATOR_MODES and mode != "list":
        if not isinstance(locator_value, str):
            issues.append(
                _error(
                    IssueCategory.INVALID_TYPE,
                    f"{path}.value",
                    f"Mode {mode!r} requires a string value, got "
                    f"{_shape_name(locator_value)}",
                )
            )
        elif not locator_value.strip():
            issues.append(
                _error(
                    IssueCategory.MISSING_REQUIRED,
                    f"{path}.value",
                    "Resource locator value cannot be empty",
                )
            )
        elif (
            mode == "url"
            and profile.secondary_checks
            and not should_skip_literal_validation(locator_value)
            and not _URL_RE.match(locator_value)
        ):
            issues.append(
                _warning(
                    IssueCategory.INVALID_VALUE,
                    f"{path}.value",
                    f"{locator_value!r} does not look like a URL",
                )
            )
    return issues


def validate_collection(
    value: Any, path: str, profile: ProfileConfig
) -> list[ValidationIssue]:
    passthrough = _expression_passthrough(value, path, profile)
    if passthrough is not None:
        return passthrough
    if isinstance(value, Mapping):
        return []
    return [
        _error(
            IssueCategory.INVALID_TYPE,
            path,
            f"Collection must be an object, got {_shape_name(value)}",
        )
    ]


def validate_fixed_collection(
    value: Any, path: str, profile: ProfileConfig
) -> list[ValidationIssue]:
    """Check an object of named groups, each an object or object list."""
    passthrough = _expression_passthrough(value, path, profile)
    if passthrough is not None:
        return passthrough
    if not isinstance(value, Mapping):
        return [
            _error(
                IssueCategory.INVALID_TYPE,
                path,
                f"Fixed collection must be an object, got "
                f"{_shape_name(value)}",
            )
        ]

    issues: list[ValidationIssue] = []
    for group, entries in value.items():
        group_path = f"{path}.{group}"
        if should_skip_literal_validation(entries) or isinstance(
            entries, Mapping
        ):
            continue
        if not _is_list(entries):
            issues.append(
                _error(
                    IssueCategory.INVALID_TYPE,
                    group_path,
                    f"Group '{group}' must be an object or an array of "
                    f"objects, got {_shape_name(entries)}",
                )
            )
            continue
        for index, entry in enumerate(entries):
            if not isinstance(entry, Mapping):
                issues.append(
                    _error(
                        IssueCategory.INVALID_TYPE,
                        f"{group_path}[{index}]",
                        f"Group '{group}' entries must be objects, got "
                        f"{_shape_name(entry)}",
                    )
                )
    return issues


def validate_complex(
    type_id: ComplexType,
    value: Any,
    path: str,
    profile: ProfileConfig,
) -> list[ValidationIssue]:
    """Dispatch to the validator for a complex type."""
    match type_id:
        case ComplexType.FILTER:
            return validate_filter(value, path, profile)
        case ComplexType.RESOURCE_MAPPER:
            return validate_resource_mapper(value, path, profile)
        case ComplexType.ASSIGNMENT_COLLECTION:
            return validate_assignment_collection(value, path, profile)
        case ComplexType.RESOURCE_LOCATOR:
            return validate_resource_locator(value, path, profile)
        case ComplexType.COLLECTION:
            return validate_collection(value, path, profile)
        case ComplexType.FIXED_COLLECTION:
            return validate_fixed_collection(value, path, profile)
        case _:
            assert_never(type_id)


# ── Primitives ─────────────────────────────────────────────


def _option_values(prop: Mapping[str, Any]) -> list[Any] | None:
    options = prop.get("options")
    if not _is_list(options) or not options:
        return None
    values: list[Any] = []
    for option in options:
        if isinstance(option, Mapping):
            if "value" in option:
                values.append(option["value"])
        else:
            values.append(option)
    return values or None


def validate_primitive(
    value: Any,
    prop: Mapping[str, Any],
    structure: TypeStructure,
    path: str,
    profile: ProfileConfig,
) -> list[ValidationIssue]:
    """Check a non-complex value against its registry structure.

    ``prop`` is the declared property; it supplies ``options`` and
    ``typeOptions`` bounds.
    """
    if should_skip_literal_validation(value):
        if (
            structure.rules.allow_expressions
            or not profile.expression_warnings
        ):
            return []
        return [
            _warning(
                IssueCategory.EXPRESSION,
                path,
                f"Type '{structure.type_id}' does not support expressions; "
                "the value will not be evaluated",
                fix=f"Use a literal such as {structure.example!r}",
            )
        ]

    expected = structure.host_shape
    actual = host_shape_of(value)
    if expected != HostShape.ANY and actual != expected:
        return [
            _error(
                IssueCategory.INVALID_TYPE,
                path,
                f"'{path}' must be {expected.value}, got {_shape_name(value)}",
                fix=f"Use a value like {structure.example!r}",
            )
        ]

    issues: list[ValidationIssue] = []
    pattern = structure.rules.pattern
    if pattern and isinstance(value, str) and value:
        if not re.match(pattern, value):
            issues.append(
                _error(
                    IssueCategory.INVALID_VALUE,
                    path,
                    f"{value!r} is not a valid {structure.type_id} value",
                    fix=f"Use a value like {structure.example!r}",
                )
            )

    match structure.type_id:
        case "json":
            if value.strip():
                try:
                    json.loads(value)
                except json.JSONDecodeError as exc:
                    issues.append(
                        _error(
                            IssueCategory.INVALID_VALUE,
                            path,
                            f"Invalid JSON: {exc.msg} at position {exc.pos}",
                        )
                    )
        case "options":
            allowed = _option_values(prop)
            if allowed is not None and value not in allowed:
                issues.append(
                    _error(
                        IssueCategory.INVALID_VALUE,
                        path,
                        f"{value!r} is not a valid option for '{path}'",
                        fix=f"Use one of: {_format_choices(allowed)}",
                    )
                )
        case "multiOptions":
            allowed = _option_values(prop)
            if allowed is not None:
                for index, item in enumerate(value):
                    if item not in allowed:
                        issues.append(
                            _error(
                                IssueCategory.INVALID_VALUE,
                                f"{path}[{index}]",
                                f"{item!r} is not a valid option for "
                                f"'{path}'",
                                fix=f"Use any of: {_format_choices(allowed)}",
                            )
                        )
        case "number":
            issues.extend(_check_bounds(value, prop, path))
    return issues


def _check_bounds(
    value: float, prop: Mapping[str, Any], path: str
) -> list[ValidationIssue]:
    type_options = prop.get("typeOptions")
    if not isinstance(type_options, Mapping):
        return []
    issues: list[ValidationIssue] = []
    minimum = type_options.get("minValue")
    maximum = type_options.get("maxValue")
    if isinstance(minimum, (int, float)) and value < minimum:
        issues.append(
            _error(
                IssueCategory.INVALID_VALUE,
                path,
                f"{value} is below the minimum of {minimum}",
            )
        )
    if isinstance(maximum, (int, float)) and value > maximum:
        issues.append(
            _error(
                IssueCategory.INVALID_VALUE,
                path,
                f"{value} is above the maximum of {maximum}",
            )
        )
    return issues
