"""Tests for the type structure registry."""

from __future__ import annotations

import dataclasses
import re

import pytest

from flowcheck.constants import ComplexType, HostShape, TypeCategory
from flowcheck.structures.registry import (
    TYPE_STRUCTURES,
    all_structures,
    complex_types,
    get_example,
    get_examples,
    get_structure,
    host_shape_of,
    is_complex_type,
    is_primitive_type,
    primitive_types,
)


class TestLookup:
    def test_known_type(self) -> None:
        structure = get_structure("string")
        assert structure is not None
        assert structure.host_shape == HostShape.STRING
        assert structure.rules.allow_empty is True

    def test_unknown_type_is_none(self) -> None:
        assert get_structure("nope") is None
        assert get_example("nope") is None
        assert get_examples("nope") == []

    def test_every_complex_type_registered(self) -> None:
        for complex_type in ComplexType:
            assert get_structure(complex_type.value) is not None

    def test_keys_match_type_ids(self) -> None:
        for type_id, structure in TYPE_STRUCTURES.items():
            assert structure.type_id == type_id

    def test_table_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            TYPE_STRUCTURES["string"] = None  # type: ignore[index]

    def test_structures_are_frozen(self) -> None:
        structure = get_structure("number")
        assert structure is not None
        with pytest.raises(dataclasses.FrozenInstanceError):
            structure.type_id = "other"  # type: ignore[misc]

    def test_all_structures_returns_copy(self) -> None:
        copy = all_structures()
        copy.pop("string")
        assert get_structure("string") is not None


class TestExamples:
    def test_examples_fall_back_to_primary(self) -> None:
        structure = get_structure("credentials")
        assert structure is not None
        assert structure.all_examples() == [structure.example]

    def test_examples_listed(self) -> None:
        assert "={{ $json.name }}" in get_examples("string")

    @pytest.mark.parametrize("type_id", ["dateTime", "color"])
    def test_pattern_examples_are_valid(self, type_id: str) -> None:
        structure = get_structure(type_id)
        assert structure is not None
        assert structure.rules.pattern is not None
        for example in structure.all_examples():
            if isinstance(example, str) and not example.startswith("="):
                assert re.match(structure.rules.pattern, example)

    def test_to_dict(self) -> None:
        structure = get_structure("filter")
        assert structure is not None
        payload = structure.to_dict()
        assert payload["type"] == "filter"
        assert payload["category"] == "special"
        assert payload["host_shape"] == "object"
        assert payload["validation"]["allow_expressions"] is True
        assert payload["examples"] == [payload["example"]]


class TestClassification:
    def test_complex(self) -> None:
        assert is_complex_type("filter")
        assert not is_complex_type("string")
        assert set(complex_types()) == {t.value for t in ComplexType}

    def test_primitive(self) -> None:
        assert is_primitive_type("number")
        assert not is_primitive_type("multiOptions")
        assert not is_primitive_type("unknown")
        for type_id in primitive_types():
            structure = get_structure(type_id)
            assert structure is not None
            assert structure.category == TypeCategory.PRIMITIVE


class TestHostShape:
    @pytest.mark.parametrize(
        ("value", "shape"),
        [
            (True, HostShape.BOOLEAN),
            (0, HostShape.NUMBER),
            (1.5, HostShape.NUMBER),
            ("x", HostShape.STRING),
            ([1], HostShape.ARRAY),
            ({"a": 1}, HostShape.OBJECT),
            (None, HostShape.ANY),
        ],
    )
    def test_host_shape_of(self, value: object, shape: HostShape) -> None:
        assert host_shape_of(value) == shape
