"""FastAPI dependency injection for settings and services."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from fastapi import Request

from flowcheck.repositories.cached_repo import CachedNodeRepository
from flowcheck.repositories.node_repo import SqlNodeRepository
from flowcheck.versions.service import (
    NodeVersionService,
    create_version_service,
)

if TYPE_CHECKING:
    from flowcheck.config import Settings
    from flowcheck.validation.scorer import LocatorHeuristics


def get_settings(request: Request) -> Settings:
    """Get Settings from app.state."""
    return request.app.state.settings  # type: ignore[no-any-return]


def get_heuristics(request: Request) -> LocatorHeuristics | None:
    """Loaded heuristics, or None for the packaged defaults."""
    return request.app.state.heuristics  # type: ignore[no-any-return]


async def get_version_service(
    request: Request,
) -> AsyncIterator[NodeVersionService]:
    """Generator dep — session lives for entire request.

    The version cache lives on app.state so it outlives the session.
    """
    state = request.app.state
    async with state.session_factory() as session:
        repo = CachedNodeRepository(
            SqlNodeRepository(session), state.version_cache
        )
        yield create_version_service(repo, state.registry)
