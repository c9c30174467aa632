"""Validation profiles: named strictness bundles.

Each profile tunes the validators uniformly. The orchestrator and every
complex-type validator consume these configs directly. Structural
errors (wrong shape, missing required sub-field) are never demoted by
any profile.
"""

from __future__ import annotations

from dataclasses import dataclass

from flowcheck.constants import (
    IssueKind,
    ProfileName,
    RecommendationThreshold,
)
from flowcheck.errors import UnknownProfileError


@dataclass(frozen=True)
class ProfileConfig:
    """Strictness settings for one validation profile.

    ``None`` for an issue kind means the finding is suppressed.
    """

    name: ProfileName
    unknown_operator_type: IssueKind | None = IssueKind.WARNING
    unknown_property_type: IssueKind | None = IssueKind.WARNING
    expression_warnings: bool = True
    secondary_checks: bool = True
    best_practice_warnings: bool = True
    locator_threshold: RecommendationThreshold = (
        RecommendationThreshold.NORMAL
    )


PROFILES: dict[ProfileName, ProfileConfig] = {
    ProfileName.MINIMAL: ProfileConfig(
        name=ProfileName.MINIMAL,
        unknown_operator_type=None,
        expression_warnings=False,
        secondary_checks=False,
        best_practice_warnings=False,
        locator_threshold=RecommendationThreshold.STRICT,
    ),
    ProfileName.RUNTIME: ProfileConfig(
        name=ProfileName.RUNTIME,
        expression_warnings=False,
        best_practice_warnings=False,
        locator_threshold=RecommendationThreshold.STRICT,
    ),
    ProfileName.AI_FRIENDLY: ProfileConfig(
        name=ProfileName.AI_FRIENDLY,
    ),
    ProfileName.STRICT: ProfileConfig(
        name=ProfileName.STRICT,
        unknown_operator_type=IssueKind.ERROR,
        unknown_property_type=IssueKind.ERROR,
        locator_threshold=RecommendationThreshold.RELAXED,
    ),
}

DEFAULT_PROFILE = ProfileName.AI_FRIENDLY


def get_profile(
    profile: ProfileConfig | ProfileName | str | None = None,
) -> ProfileConfig:
    """Resolve a profile name (or pass a config through).

    Raises ``UnknownProfileError`` for unrecognised names.
    """
    if isinstance(profile, ProfileConfig):
        return profile
    if profile is None:
        return PROFILES[DEFAULT_PROFILE]
    try:
        return PROFILES[ProfileName(profile)]
    except ValueError:
        raise UnknownProfileError(
            str(profile), [p.value for p in ProfileName]
        ) from None
