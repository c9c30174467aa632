"""MCP tool definitions: validation, scoring and version planning."""

# pyright: reportUnusedFunction=false
# All functions are registered via @mcp.tool decorator

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastmcp import FastMCP

from flowcheck.errors import FlowcheckError
from flowcheck.repositories.cached_repo import CachedNodeRepository
from flowcheck.repositories.node_repo import SqlNodeRepository
from flowcheck.structures.registry import get_structure
from flowcheck.validation.config_validator import validate_config
from flowcheck.validation.scorer import score_resource_locator
from flowcheck.versions.service import (
    NodeVersionService,
    create_version_service,
)

if TYPE_CHECKING:
    from flowcheck.mcp.server import ServerState


def _dump(payload: Any) -> str:
    return json.dumps(payload, indent=2, default=str)


def register_tools(mcp: FastMCP) -> None:
    """Register all 5 MCP tools."""

    @mcp.tool()
    async def validate_node_config(
        node_type: str,
        config: dict[str, Any],
        properties: list[dict[str, Any]] | None = None,
        profile: str = "",
        version: str = "",
    ) -> str:
        """Validate a node configuration.

        Checks each declared property against its type structure.
        When ``properties`` is omitted, the stored schema for
        ``version`` (default: latest) is used. Profiles: minimal,
        runtime, ai-friendly, strict.
        """
        state = _state()
        if properties is None:
            async with _session_service() as service:
                target = version or await service.get_latest_version(
                    node_type
                )
                metadata = (
                    await service.get_version_metadata(node_type, target)
                    if target
                    else None
                )
            if metadata is None:
                return (
                    f"No stored schema for '{node_type}'. "
                    "Pass properties explicitly."
                )
            properties = metadata.properties_schema
        try:
            result = validate_config(
                node_type,
                config,
                properties,
                profile or state.default_profile,
                heuristics=state.heuristics,
            )
        except FlowcheckError as exc:
            return f"Error: {exc}"
        return _dump(result.model_dump(mode="json"))

    @mcp.tool(name="score_resource_locator")
    async def score_resource_locator_field(
        field_name: str,
        node_type: str,
        value: str = "",
    ) -> str:
        """Score how likely a field should use resource locator format.

        Returns the confidence value, label and factor breakdown.
        """
        result = score_resource_locator(
            field_name, node_type, value, _state().heuristics
        )
        return _dump(result.to_dict())

    @mcp.tool()
    async def get_type_structure(type_id: str) -> str:
        """Describe a property type: shape, rules and examples."""
        structure = get_structure(type_id)
        if structure is None:
            return f"Unknown property type '{type_id}'."
        return _dump(structure.to_dict())

    @mcp.tool()
    async def analyze_node_version(
        node_type: str,
        current_version: str,
    ) -> str:
        """Check whether a node version is outdated.

        Reports the latest version, gap, breaking changes and a
        confidence level for upgrading.
        """
        try:
            async with _session_service() as service:
                analysis = await service.analyze_version(
                    node_type, current_version
                )
        except FlowcheckError as exc:
            return f"Error: {exc}"
        return _dump(analysis.model_dump(mode="json"))

    @mcp.tool()
    async def suggest_upgrade_path(
        node_type: str,
        current_version: str,
    ) -> str:
        """Plan an upgrade from the current to the latest version.

        Large upgrades with breaking changes are split into steps
        through intermediate versions.
        """
        state = _state()
        try:
            async with _session_service() as service:
                plan = await service.suggest_upgrade_path(
                    node_type,
                    current_version,
                    timeout=state.plan_timeout,
                )
        except FlowcheckError as exc:
            return f"Error: {exc}"
        except TimeoutError:
            return (
                "Error: upgrade planning timed out after "
                f"{state.plan_timeout}s."
            )
        if plan is None:
            return (
                f"No upgrade needed for '{node_type}' "
                f"v{current_version}."
            )
        return _dump(plan.model_dump(mode="json"))


def _state() -> ServerState:
    from flowcheck.mcp.server import get_state

    return get_state()


@asynccontextmanager
async def _session_service() -> AsyncIterator[NodeVersionService]:
    """Yield a version service with proper session lifecycle."""
    state = _state()
    async with state.session_factory() as session:
        repo = CachedNodeRepository(
            SqlNodeRepository(session), state.version_cache
        )
        yield create_version_service(repo, state.registry)
