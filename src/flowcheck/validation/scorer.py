"""Score how likely a field holds a resource-locator value.

Used where the node schema does not declare ``resourceLocator``
explicitly. Four binary factors are weighted and normalised:

- exact-field-match: field is on the integration's allowlist
- field-pattern: generic name shape (``...Id``, ``...Url``, bare nouns)
- value-pattern: expression whose inner path ends in an identifier token
- node-category: integration is known to use locators heavily

Weights and pattern lists are data (``data/locator_heuristics.yaml``)
so they can be tuned without touching the scoring algorithm. Exact
matches dominate because treating a plain string field as a locator is
more disruptive than missing one.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

from flowcheck.constants import (
    CONFIDENCE_LABEL_THRESHOLDS,
    RECOMMENDATION_THRESHOLDS,
    ConfidenceLabel,
    RecommendationThreshold,
)
from flowcheck.errors import DataFileError
from flowcheck.validation.expressions import (
    contains_expression,
    extract_expression_content,
)

logger = logging.getLogger(__name__)

_REASONS: dict[ConfidenceLabel, str] = {
    ConfidenceLabel.HIGH: (
        "High confidence: multiple strong indicators suggest "
        "resource locator format"
    ),
    ConfidenceLabel.MEDIUM: (
        "Medium confidence: some indicators suggest resource "
        "locator format"
    ),
    ConfidenceLabel.LOW: (
        "Low confidence: weak indicators for resource locator format"
    ),
    ConfidenceLabel.VERY_LOW: (
        "Very low confidence: minimal evidence for resource "
        "locator format"
    ),
}

_SPAN_BODY_RE = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)
_TOKEN_SPLIT_RE = re.compile(r"[.\[\]'\"\s()]+")


@dataclass(frozen=True)
class ValidationFactor:
    """One weighted indicator in a confidence score."""

    name: str
    weight: float
    matched: bool
    description: str


@dataclass(frozen=True)
class ConfidenceResult:
    """Normalised score with its label, reason and factor breakdown."""

    value: float  # 0.0 to 1.0
    level: ConfidenceLabel
    reason: str
    factors: tuple[ValidationFactor, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "level": self.level.value,
            "reason": self.reason,
            "factors": [
                {
                    "name": f.name,
                    "weight": f.weight,
                    "matched": f.matched,
                    "description": f.description,
                }
                for f in self.factors
            ],
        }


@dataclass(frozen=True)
class LocatorHeuristics:
    """Tunable weight table and pattern lists for the scorer."""

    exact_field_weight: float
    field_pattern_weight: float
    value_pattern_weight: float
    node_category_weight: float
    exact_fields: dict[str, frozenset[str]]
    field_patterns: tuple[re.Pattern[str], ...]
    value_token_pattern: re.Pattern[str]
    resource_heavy_nodes: tuple[str, ...]

    @classmethod
    def from_mapping(cls, raw: dict[str, Any]) -> LocatorHeuristics:
        """Build heuristics from parsed YAML.

        Raises ``DataFileError`` on missing keys, non-positive
        weights, or invalid regexes.
        """
        try:
            weights = raw["weights"]
            parsed = cls(
                exact_field_weight=float(weights["exact_field_match"]),
                field_pattern_weight=float(weights["field_pattern"]),
                value_pattern_weight=float(weights["value_pattern"]),
                node_category_weight=float(weights["node_category"]),
                exact_fields={
                    str(k).lower(): frozenset(str(f) for f in v)
                    for k, v in raw["exact_fields"].items()
                },
                field_patterns=tuple(
                    re.compile(p, re.IGNORECASE)
                    for p in raw["field_patterns"]
                ),
                value_token_pattern=re.compile(
                    raw["value_token_pattern"], re.IGNORECASE
                ),
                resource_heavy_nodes=tuple(
                    str(n).lower() for n in raw["resource_heavy_nodes"]
                ),
            )
        except (KeyError, TypeError, AttributeError, re.error) as exc:
            msg = f"Malformed locator heuristics: {exc}"
            raise DataFileError(msg) from exc

        for name, weight in (
            ("exact_field_match", parsed.exact_field_weight),
            ("field_pattern", parsed.field_pattern_weight),
            ("value_pattern", parsed.value_pattern_weight),
            ("node_category", parsed.node_category_weight),
        ):
            if not 0 < weight <= 1:
                msg = f"Weight '{name}' must be in (0, 1], got {weight}"
                raise DataFileError(msg)
        return parsed


def load_heuristics(path: Path | None = None) -> LocatorHeuristics:
    """Load heuristics from ``path`` or the packaged defaults."""
    if path is None:
        return _default_heuristics()
    if not path.exists():
        msg = f"Locator heuristics not found: {path}"
        raise FileNotFoundError(msg)
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    logger.info("event=heuristics_loaded path=%s", path)
    return LocatorHeuristics.from_mapping(raw)


@lru_cache(maxsize=1)
def _default_heuristics() -> LocatorHeuristics:
    text = (
        resources.files("flowcheck")
        .joinpath("data/locator_heuristics.yaml")
        .read_text(encoding="utf-8")
    )
    return LocatorHeuristics.from_mapping(yaml.safe_load(text))


def _node_segments(node_type: str) -> list[str]:
    return [s for s in node_type.lower().split(".") if s]


def check_exact_field_match(
    field_name: str,
    node_type: str,
    heuristics: LocatorHeuristics,
) -> bool:
    """True if the integration named in ``node_type`` lists the field.

    Any dotted segment of the node type may name the integration,
    either exactly or as a ``<name>-`` prefix.
    """
    segments = _node_segments(node_type)
    for integration, fields in heuristics.exact_fields.items():
        if any(
            seg == integration or seg.startswith(f"{integration}-")
            for seg in segments
        ):
            return field_name in fields
    return False


def check_field_pattern(
    field_name: str, heuristics: LocatorHeuristics
) -> bool:
    return any(p.search(field_name) for p in heuristics.field_patterns)


def check_value_pattern(
    value: Any, heuristics: LocatorHeuristics
) -> bool:
    """True if an expression's inner path ends in an id-like token."""
    if not contains_expression(value):
        return False
    content = extract_expression_content(value)
    for body in _SPAN_BODY_RE.findall(content) or [content]:
        tokens = [t for t in _TOKEN_SPLIT_RE.split(body) if t]
        if tokens and heuristics.value_token_pattern.search(tokens[-1]):
            return True
    return False


def check_node_category(
    node_type: str, heuristics: LocatorHeuristics
) -> bool:
    segments = _node_segments(node_type)
    return any(
        category in seg
        for seg in segments
        for category in heuristics.resource_heavy_nodes
    )


def confidence_level(score: float) -> ConfidenceLabel:
    """Map a score to its discrete label."""
    for threshold, label in CONFIDENCE_LABEL_THRESHOLDS:
        if score >= threshold:
            return label
    return ConfidenceLabel.VERY_LOW


def score_resource_locator(
    field_name: str,
    node_type: str,
    value: Any,
    heuristics: LocatorHeuristics | None = None,
) -> ConfidenceResult:
    """Score a field as a resource-locator candidate.

    Score = matched weight / total weight, so it always lies in [0, 1].
    """
    h = heuristics or _default_heuristics()
    factors = (
        ValidationFactor(
            name="exact-field-match",
            weight=h.exact_field_weight,
            matched=check_exact_field_match(field_name, node_type, h),
            description=(
                f"Field name '{field_name}' is known to use resource "
                f"locator in {node_type}"
            ),
        ),
        ValidationFactor(
            name="field-pattern",
            weight=h.field_pattern_weight,
            matched=check_field_pattern(field_name, h),
            description=(
                f"Field name '{field_name}' matches common resource "
                "locator patterns"
            ),
        ),
        ValidationFactor(
            name="value-pattern",
            weight=h.value_pattern_weight,
            matched=check_value_pattern(value, h),
            description=(
                "Value contains patterns typical of resource identifiers"
            ),
        ),
        ValidationFactor(
            name="node-category",
            weight=h.node_category_weight,
            matched=check_node_category(node_type, h),
            description=(
                f"Node type '{node_type}' typically uses resource locators"
            ),
        ),
    )

    total = math.fsum(f.weight for f in factors)
    matched = math.fsum(f.weight for f in factors if f.matched)
    score = round(matched / total, 6) if total > 0 else 0.0
    level = confidence_level(score)
    return ConfidenceResult(
        value=score,
        level=level,
        reason=_REASONS[level],
        factors=factors,
    )


def should_apply_recommendation(
    score: float,
    threshold: RecommendationThreshold | str = RecommendationThreshold.NORMAL,
) -> bool:
    """Gate automated action on a score.

    Raises ``ValueError`` for an unknown threshold name.
    """
    return score >= RECOMMENDATION_THRESHOLDS[
        RecommendationThreshold(threshold)
    ]
