"""Exception hierarchy for flowcheck.

Only caller mistakes raise. Missing schema or version data degrades to
a usable result instead, and repository/collaborator failures propagate
unchanged.
"""

from __future__ import annotations


class FlowcheckError(Exception):
    """Base class for all flowcheck errors."""


class InvalidVersionError(FlowcheckError, ValueError):
    """A version string has a segment that is not a non-negative integer."""

    def __init__(self, version: str) -> None:
        super().__init__(
            f"Invalid version '{version}': segments must be "
            "non-negative integers separated by '.'"
        )
        self.version = version


class UnknownProfileError(FlowcheckError, ValueError):
    """A validation profile name is not one of the known profiles."""

    def __init__(self, name: str, known: list[str]) -> None:
        super().__init__(
            f"Unknown validation profile '{name}'. "
            f"Must be one of: {', '.join(known)}"
        )
        self.name = name


class DataFileError(FlowcheckError):
    """A data file (scorer heuristics, breaking changes) is malformed."""
