"""SQLAlchemy ORM models."""

from flowcheck.models.base import Base
from flowcheck.models.node_version import NodeVersion

__all__ = [
    "Base",
    "NodeVersion",
]
