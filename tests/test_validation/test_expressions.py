"""Tests for expression classification."""

from __future__ import annotations

import pytest

from flowcheck.validation.expressions import (
    contains_expression,
    extract_expression_content,
    has_mixed_content,
    is_expression,
    needs_expression_prefix,
    should_skip_literal_validation,
)


class TestIsExpression:
    def test_prefixed_string(self) -> None:
        assert is_expression("={{ $json.id }}")
        assert is_expression("=literal")

    @pytest.mark.parametrize("value", ["{{ $json.id }}", "plain", 5, None])
    def test_not_expression(self, value: object) -> None:
        assert not is_expression(value)


class TestContainsExpression:
    def test_span(self) -> None:
        assert contains_expression("Hello {{ $json.name }}")

    def test_multiline_span(self) -> None:
        assert contains_expression("{{\n $json.name \n}}")

    def test_no_span(self) -> None:
        assert not contains_expression("={ not a span }")
        assert not contains_expression(42)


def test_skip_literal_validation() -> None:
    assert should_skip_literal_validation("=$json.x")
    assert should_skip_literal_validation("id: {{ $json.id }}")
    assert not should_skip_literal_validation("abc")
    assert not should_skip_literal_validation({"a": 1})


class TestExtractContent:
    def test_strips_marker_and_wrapper(self) -> None:
        assert extract_expression_content("={{ $json.id }}") == "$json.id"

    def test_marker_only(self) -> None:
        assert extract_expression_content("=$json.id") == "$json.id"

    def test_non_expression_unchanged(self) -> None:
        assert extract_expression_content("{{ x }}") == "{{ x }}"


class TestMixedContent:
    def test_pure_expression(self) -> None:
        assert not has_mixed_content("={{ $json.id }}")

    def test_literal_around_span(self) -> None:
        assert has_mixed_content("=Hello {{ $json.name }}!")

    def test_two_spans(self) -> None:
        assert has_mixed_content("={{ $json.a }}{{ $json.b }}")

    def test_no_span(self) -> None:
        assert not has_mixed_content("plain")


def test_needs_prefix() -> None:
    assert needs_expression_prefix("{{ $json.id }}")
    assert not needs_expression_prefix("={{ $json.id }}")
    assert not needs_expression_prefix("plain")
