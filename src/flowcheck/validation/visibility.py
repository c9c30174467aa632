"""``displayOptions`` evaluation: which declared properties are shown.

A property is visible when every ``show`` key matches the current config
and no ``hide`` key does. Expected values may be plain literals or
``{"_cnd": {op: operand}}`` condition objects.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any

logger = logging.getLogger(__name__)

_CONDITION_KEY = "_cnd"


def _as_list(values: Any) -> list[Any]:
    if isinstance(values, Sequence) and not isinstance(values, str):
        return list(values)
    return [values]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _condition_matches(condition: Mapping[str, Any], actual: Any) -> bool:
    for op, operand in condition.items():
        match op:
            case "eq":
                ok = actual == operand
            case "not":
                ok = actual != operand
            case "gte" | "lte" | "gt" | "lt":
                if not (_is_number(actual) and _is_number(operand)):
                    return False
                ok = {
                    "gte": actual >= operand,
                    "lte": actual <= operand,
                    "gt": actual > operand,
                    "lt": actual < operand,
                }[op]
            case "between":
                bounds = operand if isinstance(operand, Mapping) else {}
                low, high = bounds.get("from"), bounds.get("to")
                ok = (
                    _is_number(actual)
                    and _is_number(low)
                    and _is_number(high)
                    and low <= actual <= high
                )
            case "startsWith":
                ok = isinstance(actual, str) and actual.startswith(
                    str(operand)
                )
            case "endsWith":
                ok = isinstance(actual, str) and actual.endswith(
                    str(operand)
                )
            case "includes":
                ok = isinstance(actual, str) and str(operand) in actual
            case "regex":
                try:
                    ok = isinstance(actual, str) and bool(
                        re.search(str(operand), actual)
                    )
                except re.error:
                    logger.debug(
                        "event=display_regex_invalid pattern=%r", operand
                    )
                    ok = False
            case "exists":
                ok = actual is not None
            case _:
                return False
        if not ok:
            return False
    return True


def value_matches(expected: Any, actual: Any) -> bool:
    """Match one expected displayOptions entry against a config value."""
    if isinstance(expected, Mapping) and _CONDITION_KEY in expected:
        condition = expected[_CONDITION_KEY]
        return isinstance(condition, Mapping) and _condition_matches(
            condition, actual
        )
    return expected == actual


def is_property_visible(
    prop: Mapping[str, Any], config: Mapping[str, Any]
) -> bool:
    """Evaluate a property's ``displayOptions`` against ``config``.

    Properties without display options are always visible. Keys absent
    from ``config`` compare as ``None``.
    """
    display = prop.get("displayOptions")
    if not isinstance(display, Mapping):
        return True

    show = display.get("show")
    if isinstance(show, Mapping):
        for key, values in show.items():
            actual = config.get(key)
            if not any(value_matches(e, actual) for e in _as_list(values)):
                return False

    hide = display.get("hide")
    if isinstance(hide, Mapping):
        for key, values in hide.items():
            actual = config.get(key)
            if any(value_matches(e, actual) for e in _as_list(values)):
                return False
    return True
