"""MCP server: FastMCP instance with configure/run helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from fastmcp import FastMCP

from flowcheck import __version__
from flowcheck.constants import (
    DEFAULT_UPGRADE_PLAN_TIMEOUT_SECONDS,
    ProfileName,
)
from flowcheck.mcp.tools import register_tools
from flowcheck.versions.cache import VersionCache

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import (
        AsyncSession,
        async_sessionmaker,
    )

    from flowcheck.validation.scorer import LocatorHeuristics
    from flowcheck.versions.breaking_changes import BreakingChangeRegistry

mcp = FastMCP(
    name="flowcheck",
    version=__version__,
    instructions=(
        "Validates workflow node configurations and plans node "
        "version upgrades"
    ),
)


@dataclass
class ServerState:
    """Collaborators shared by every tool call."""

    session_factory: async_sessionmaker[AsyncSession]
    version_cache: VersionCache = field(default_factory=VersionCache)
    default_profile: str = ProfileName.AI_FRIENDLY
    heuristics: LocatorHeuristics | None = None
    registry: BreakingChangeRegistry | None = None
    plan_timeout: float = DEFAULT_UPGRADE_PLAN_TIMEOUT_SECONDS


_state: ServerState | None = None

register_tools(mcp)


def configure(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    version_cache: VersionCache | None = None,
    default_profile: str = ProfileName.AI_FRIENDLY,
    heuristics: LocatorHeuristics | None = None,
    registry: BreakingChangeRegistry | None = None,
    plan_timeout: float = DEFAULT_UPGRADE_PLAN_TIMEOUT_SECONDS,
) -> None:
    """Set the DB session factory and shared collaborators for tools.

    Must be called before serving requests.
    """
    global _state  # noqa: PLW0603
    _state = ServerState(
        session_factory=session_factory,
        version_cache=(
            version_cache if version_cache is not None else VersionCache()
        ),
        default_profile=default_profile,
        heuristics=heuristics,
        registry=registry,
        plan_timeout=plan_timeout,
    )


def get_state() -> ServerState:
    """Get the configured server state."""
    if _state is None:
        msg = (
            "MCP server not configured. "
            "Call configure(session_factory) first."
        )
        raise RuntimeError(msg)
    return _state
