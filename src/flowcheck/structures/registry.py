"""Type structure registry: property type id → expected shape and rules.

A static table built once at import time. Accessors only; the checks
that consume these rules live in ``flowcheck.validation``.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from flowcheck.constants import (
    ComplexType,
    HostShape,
    TypeCategory,
)
from flowcheck.structures.schemas import TypeStructure, ValidationRules

_ISO_DATETIME = (
    r"^\d{4}-\d{2}-\d{2}(T\d{2}:\d{2}:\d{2}(\.\d{3})?(Z|[+-]\d{2}:\d{2})?)?$"
)
_HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


def _s(
    type_id: str,
    category: TypeCategory,
    host_shape: HostShape,
    description: str,
    example: Any,
    *,
    allow_empty: bool = False,
    allow_expressions: bool = True,
    pattern: str | None = None,
    examples: tuple[Any, ...] = (),
    notes: tuple[str, ...] = (),
) -> TypeStructure:
    return TypeStructure(
        type_id=str(type_id),
        category=category,
        host_shape=host_shape,
        description=description,
        rules=ValidationRules(
            allow_empty=allow_empty,
            allow_expressions=allow_expressions,
            pattern=pattern,
        ),
        example=example,
        examples=examples,
        notes=notes,
    )


_P = TypeCategory.PRIMITIVE
_SPECIAL = TypeCategory.SPECIAL

_STRUCTURES: tuple[TypeStructure, ...] = (
    # Primitives
    _s(
        "string", _P, HostShape.STRING,
        "A text value that can contain any characters",
        "Hello World",
        allow_empty=True,
        examples=("", "A simple text", "={{ $json.name }}"),
        notes=("Most common property type", "Supports expressions"),
    ),
    _s(
        "number", _P, HostShape.NUMBER,
        "A numeric value (integer or decimal)",
        42,
        examples=(0, -10, 3.14, "={{ $json.count }}"),
        notes=("Honours typeOptions.minValue / maxValue",),
    ),
    _s(
        "boolean", _P, HostShape.BOOLEAN,
        "A true/false toggle",
        True,
        allow_expressions=False,
        examples=(True, False),
        notes=("Rendered as a switch",),
    ),
    _s(
        "dateTime", _P, HostShape.STRING,
        "A date and time value in ISO 8601 format",
        "2024-01-20T10:30:00Z",
        pattern=_ISO_DATETIME,
        examples=("2024-01-20", "2024-01-20T10:30:00Z", "={{ $now }}"),
        notes=("Literal values must be ISO 8601",),
    ),
    _s(
        "color", _P, HostShape.STRING,
        "A color value in hex format",
        "#FF5733",
        pattern=_HEX_COLOR,
        examples=("#000000", "#FFFFFF"),
        notes=("Must be a 6-digit hex color",),
    ),
    _s(
        "json", _P, HostShape.STRING,
        "A JSON string that can be parsed into any structure",
        '{"key": "value"}',
        examples=("{}", "[1, 2, 3]", "={{ $json }}"),
        notes=("Must be valid JSON when parsed",),
    ),
    _s(
        "options", _P, HostShape.STRING,
        "Single selection from a list of predefined options",
        "option1",
        allow_expressions=False,
        examples=("GET", "POST", "update"),
        notes=("Value must match one of the declared option values",),
    ),
    _s(
        "multiOptions", TypeCategory.ARRAY, HostShape.ARRAY,
        "Multiple selections from a list of predefined options",
        ["option1", "option2"],
        allow_empty=True,
        allow_expressions=False,
        examples=([], ["GET", "POST"]),
        notes=("Each item must be a declared option value",),
    ),
    # Collections
    _s(
        ComplexType.COLLECTION, TypeCategory.COLLECTION, HostShape.OBJECT,
        "A group of related properties with dynamic values",
        {"name": "John Doe", "email": "john@example.com"},
        allow_empty=True,
        examples=({}, {"key1": "value1", "key2": 123}),
        notes=("Each nested property can be any type",),
    ),
    _s(
        ComplexType.FIXED_COLLECTION, TypeCategory.COLLECTION,
        HostShape.OBJECT,
        "A collection with predefined groups of properties",
        {"headers": [{"name": "Content-Type", "value": "application/json"}]},
        allow_empty=True,
        examples=({}, {"queryParameters": [{"name": "id", "value": "123"}]}),
        notes=("Group values are objects or lists of objects",),
    ),
    # Special
    _s(
        ComplexType.RESOURCE_LOCATOR, _SPECIAL, HostShape.OBJECT,
        "A resource specified by ID, URL, name, or list selection",
        {"mode": "id", "value": "abc123"},
        examples=(
            {"mode": "url", "value": "https://example.com/resource/123"},
            {"mode": "list", "value": "item-from-dropdown"},
            {"mode": "id", "value": "={{ $json.resourceId }}"},
        ),
        notes=("Mode determines how value is interpreted",),
    ),
    _s(
        ComplexType.RESOURCE_MAPPER, _SPECIAL, HostShape.OBJECT,
        "Maps input data fields to resource fields",
        {
            "mappingMode": "defineBelow",
            "value": {"name": "={{ $json.fullName }}", "status": "active"},
        },
        examples=({"mappingMode": "autoMapInputData", "value": {}},),
        notes=("Target field schema is resolved at runtime",),
    ),
    _s(
        ComplexType.FILTER, _SPECIAL, HostShape.OBJECT,
        "Conditions for filtering data with boolean logic",
        {
            "combinator": "and",
            "conditions": [
                {
                    "id": "abc-123",
                    "leftValue": "={{ $json.status }}",
                    "operator": {"type": "string", "operation": "equals"},
                    "rightValue": "active",
                }
            ],
        },
        notes=(
            "Operations vary by operator type",
            "Unary operations need operator.singleValue: true",
        ),
    ),
    _s(
        ComplexType.ASSIGNMENT_COLLECTION, _SPECIAL, HostShape.OBJECT,
        "Ordered variable assignments",
        {
            "assignments": [
                {
                    "id": "abc-123",
                    "name": "userName",
                    "value": "={{ $json.name }}",
                    "type": "string",
                }
            ]
        },
        notes=("Used by the Set node and similar",),
    ),
    _s(
        "credentials", _SPECIAL, HostShape.STRING,
        "Reference to a credential configuration",
        "googleSheetsOAuth2Api",
        allow_expressions=False,
    ),
    _s(
        "credentialsSelect", _SPECIAL, HostShape.STRING,
        "Dropdown to select from available credentials",
        "credential-id-123",
    ),
    _s(
        "hidden", _SPECIAL, HostShape.STRING,
        "Hidden property used for internal logic",
        "",
        allow_empty=True,
    ),
    _s(
        "button", _SPECIAL, HostShape.STRING,
        "Clickable button that triggers an action",
        "",
        allow_empty=True,
        allow_expressions=False,
    ),
    _s(
        "callout", _SPECIAL, HostShape.STRING,
        "Informational message box",
        "",
        allow_empty=True,
        allow_expressions=False,
    ),
    _s(
        "notice", _SPECIAL, HostShape.STRING,
        "Notice message displayed to the user",
        "",
        allow_empty=True,
        allow_expressions=False,
    ),
    _s(
        "workflowSelector", _SPECIAL, HostShape.STRING,
        "Dropdown to select another workflow",
        "workflow-123",
    ),
    _s(
        "curlImport", _SPECIAL, HostShape.STRING,
        "Import configuration from a cURL command",
        "curl -X GET https://api.example.com/data",
        allow_empty=True,
        allow_expressions=False,
    ),
)

TYPE_STRUCTURES: Mapping[str, TypeStructure] = MappingProxyType(
    {s.type_id: s for s in _STRUCTURES}
)

_COMPLEX_IDS = frozenset(t.value for t in ComplexType)


def get_structure(type_id: str) -> TypeStructure | None:
    """Return the structure for ``type_id``, or None when unknown."""
    return TYPE_STRUCTURES.get(type_id)


def all_structures() -> dict[str, TypeStructure]:
    return dict(TYPE_STRUCTURES)


def get_example(type_id: str) -> Any:
    structure = get_structure(type_id)
    return structure.example if structure else None


def get_examples(type_id: str) -> list[Any]:
    structure = get_structure(type_id)
    return structure.all_examples() if structure else []


def is_complex_type(type_id: str) -> bool:
    return type_id in _COMPLEX_IDS


def is_primitive_type(type_id: str) -> bool:
    structure = get_structure(type_id)
    return (
        structure is not None
        and structure.category == TypeCategory.PRIMITIVE
    )


def complex_types() -> list[str]:
    return [t for t in TYPE_STRUCTURES if t in _COMPLEX_IDS]


def primitive_types() -> list[str]:
    return [t for t in TYPE_STRUCTURES if is_primitive_type(t)]


def host_shape_of(value: Any) -> HostShape:
    """Classify a Python value by the host shape it presents.

    ``bool`` is checked before numbers since it subclasses ``int``.
    """
    if isinstance(value, bool):
        return HostShape.BOOLEAN
    if isinstance(value, (int, float)):
        return HostShape.NUMBER
    if isinstance(value, str):
        return HostShape.STRING
    if isinstance(value, (list, tuple)):
        return HostShape.ARRAY
    if isinstance(value, Mapping):
        return HostShape.OBJECT
    return HostShape.ANY
