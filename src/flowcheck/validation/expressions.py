"""Classify values as deferred expressions or literals.

An expression is a string with a leading ``=`` marker; its runtime value
is unknown until the platform evaluates it, so static type and format
checks must skip it. Strings containing ``{{ ... }}`` spans are also
exempt, even without the marker.
"""

from __future__ import annotations

import re
from typing import Any

EXPRESSION_PREFIX = "="

_SPAN_RE = re.compile(r"\{\{.*\}\}", re.DOTALL)
_WRAPPER_RE = re.compile(r"^\{\{(.+)\}\}$", re.DOTALL)


def is_expression(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(EXPRESSION_PREFIX)


def contains_expression(value: Any) -> bool:
    """True if ``value`` is a string holding a ``{{ ... }}`` span."""
    return isinstance(value, str) and _SPAN_RE.search(value) is not None


def should_skip_literal_validation(value: Any) -> bool:
    return is_expression(value) or contains_expression(value)


def extract_expression_content(value: str) -> str:
    """Strip the ``=`` marker and an enclosing ``{{ }}`` wrapper.

    Non-expressions come back unchanged. When the body is not a single
    wrapper, only the marker is removed.
    """
    if not is_expression(value):
        return value
    body = value[len(EXPRESSION_PREFIX):]
    match = _WRAPPER_RE.match(body)
    if match:
        return match.group(1).strip()
    return body


def has_mixed_content(value: Any) -> bool:
    """True if literal text or several spans surround the expression.

    Exactly one ``={{ ... }}`` wrapper is pure; anything else that
    contains a span is mixed.
    """
    if not contains_expression(value):
        return False
    trimmed = value.strip()
    if (
        trimmed.startswith(EXPRESSION_PREFIX + "{{")
        and trimmed.endswith("}}")
        and trimmed.count("{{") == 1
    ):
        return False
    return True


def needs_expression_prefix(value: Any) -> bool:
    """True for ``{{ }}`` templates missing the leading ``=`` marker.

    The platform stores such strings as literal text, so the braces are
    never evaluated.
    """
    return contains_expression(value) and not is_expression(value)
