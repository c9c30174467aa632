"""Shared constants — single source of truth for cross-module values.

All magic strings and numbers that appear in 2+ files belong here.
StrEnum members are str-compatible, so downstream code (JSON payloads,
MCP tool returns, SQL columns) works unchanged.
"""

from __future__ import annotations

from enum import StrEnum

# ── String Enums ─────────────────────────────────────────


class IssueKind(StrEnum):
    """Whether a validation issue blocks the configuration."""

    ERROR = "error"
    WARNING = "warning"


class IssueCategory(StrEnum):
    """What kind of problem a validation issue describes."""

    MISSING_REQUIRED = "missing_required"
    INVALID_TYPE = "invalid_type"
    INVALID_VALUE = "invalid_value"
    INVALID_CONFIGURATION = "invalid_configuration"
    EXPRESSION = "expression"
    BEST_PRACTICE = "best_practice"
    UNKNOWN_TYPE = "unknown_type"


class ProfileName(StrEnum):
    """Named strictness bundles applied across all validators."""

    MINIMAL = "minimal"
    RUNTIME = "runtime"
    AI_FRIENDLY = "ai-friendly"
    STRICT = "strict"


class HostShape(StrEnum):
    """Python-side shape a property value must have."""

    ARRAY = "array"
    OBJECT = "object"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ANY = "any"


class TypeCategory(StrEnum):
    """Coarse grouping of property types in the structure registry."""

    PRIMITIVE = "primitive"
    ARRAY = "array"
    COLLECTION = "collection"
    SPECIAL = "special"


class ComplexType(StrEnum):
    """Property types that need a dedicated structural validator."""

    FILTER = "filter"
    RESOURCE_MAPPER = "resourceMapper"
    ASSIGNMENT_COLLECTION = "assignmentCollection"
    RESOURCE_LOCATOR = "resourceLocator"
    COLLECTION = "collection"
    FIXED_COLLECTION = "fixedCollection"


class ConfidenceLabel(StrEnum):
    """Discrete label derived from a resource-locator confidence score."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    VERY_LOW = "very-low"


class RecommendationThreshold(StrEnum):
    """Named gates for acting on a confidence score."""

    STRICT = "strict"
    NORMAL = "normal"
    RELAXED = "relaxed"


class Severity(StrEnum):
    """Severity of a breaking change, effort of an upgrade plan."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class ChangeType(StrEnum):
    """How a property changed between two node versions."""

    ADDED = "added"
    REMOVED = "removed"
    RENAMED = "renamed"
    TYPE_CHANGED = "type_changed"
    REQUIREMENT_CHANGED = "requirement_changed"
    DEFAULT_CHANGED = "default_changed"


class ChangeSource(StrEnum):
    """Where a detected change came from."""

    REGISTRY = "registry"
    DYNAMIC = "dynamic"


# ── Confidence Thresholds ────────────────────────────────

CONFIDENCE_LABEL_THRESHOLDS: tuple[tuple[float, ConfidenceLabel], ...] = (
    (0.8, ConfidenceLabel.HIGH),
    (0.5, ConfidenceLabel.MEDIUM),
    (0.3, ConfidenceLabel.LOW),
)

RECOMMENDATION_THRESHOLDS: dict[RecommendationThreshold, float] = {
    RecommendationThreshold.STRICT: 0.8,
    RecommendationThreshold.NORMAL: 0.5,
    RecommendationThreshold.RELAXED: 0.3,
}

# ── Upgrade Effort ───────────────────────────────────────

EFFORT_HIGH_BREAKING = 5
EFFORT_HIGH_STEPS = 3
EFFORT_MEDIUM_BREAKING = 2
EFFORT_MEDIUM_STEPS = 1
LARGE_VERSION_GAP = 2

# ── Wildcards ────────────────────────────────────────────

ANY_NODE_TYPE = "*"

# ── Cache / Timeouts ─────────────────────────────────────

DEFAULT_VERSION_CACHE_TTL_SECONDS = 300.0
DEFAULT_UPGRADE_PLAN_TIMEOUT_SECONDS = 30.0

# ── Auth ─────────────────────────────────────────────────

AUTH_EXEMPT_PATHS = frozenset({
    "/api/health",
    "/api/openapi.json",
    "/api/docs",
    "/api/redoc",
})

# Static type-structure catalogue; readable without a key
AUTH_PUBLIC_READ_PREFIXES = ("/api/types",)

AUTH_HEADER = "X-API-Key"
