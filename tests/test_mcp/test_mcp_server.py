"""Tests for the MCP server."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

import pytest
from fastmcp import Client
from sqlalchemy.ext.asyncio import (
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from flowcheck.mcp.server import configure, get_state, mcp
from flowcheck.models.base import Base
from flowcheck.repositories.node_repo import SqlNodeRepository
from flowcheck.versions.breaking_changes import load_registry
from flowcheck.versions.schemas import VersionMetadata
from tests.conftest import HTTP, SHEETS

URL_PROP: dict[str, Any] = {
    "name": "url",
    "type": "string",
    "required": True,
}


@pytest.fixture
async def mcp_configured() -> AsyncIterator[None]:
    """Configure MCP server with in-memory DB."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(
        engine, expire_on_commit=False
    )

    # Seed data
    async with factory() as session:
        repo = SqlNodeRepository(session)
        for version in ("4.0", "4.1"):
            await repo.upsert_version(
                VersionMetadata(
                    node_type=HTTP,
                    version=version,
                    properties_schema=[URL_PROP],
                )
            )
        await repo.upsert_version(
            VersionMetadata(
                node_type=HTTP,
                version="4.2",
                is_current_max=True,
                properties_schema=[
                    URL_PROP,
                    {
                        "name": "authentication",
                        "type": "options",
                        "required": True,
                    },
                ],
            )
        )
        await session.commit()

    configure(factory, registry=load_registry())
    yield
    await engine.dispose()


async def _call(name: str, arguments: dict[str, Any]) -> str:
    async with Client(mcp) as client:
        result = await client.call_tool(name, arguments)
    return result.content[0].text  # type: ignore[union-attr]


async def test_list_tools(mcp_configured: None) -> None:
    async with Client(mcp) as client:
        tools = await client.list_tools()
    names = {t.name for t in tools}
    assert names == {
        "validate_node_config",
        "score_resource_locator",
        "get_type_structure",
        "analyze_node_version",
        "suggest_upgrade_path",
    }


async def test_validate_with_explicit_properties(
    mcp_configured: None,
) -> None:
    text = await _call(
        "validate_node_config",
        {
            "node_type": HTTP,
            "config": {},
            "properties": [URL_PROP],
            "profile": "strict",
        },
    )
    payload = json.loads(text)
    assert payload["valid"] is False
    assert payload["profile"] == "strict"
    assert payload["errors"][0]["property"] == "url"


async def test_validate_uses_stored_schema(mcp_configured: None) -> None:
    text = await _call(
        "validate_node_config",
        {"node_type": HTTP, "config": {"url": "https://example.com"}},
    )
    payload = json.loads(text)
    # latest schema requires authentication
    assert payload["valid"] is False
    assert payload["errors"][0]["property"] == "authentication"

    text = await _call(
        "validate_node_config",
        {
            "node_type": HTTP,
            "config": {"url": "https://example.com"},
            "version": "4.1",
        },
    )
    assert json.loads(text)["valid"] is True


async def test_validate_without_schema(mcp_configured: None) -> None:
    text = await _call(
        "validate_node_config", {"node_type": SHEETS, "config": {}}
    )
    assert "No stored schema" in text


async def test_validate_unknown_profile(mcp_configured: None) -> None:
    text = await _call(
        "validate_node_config",
        {
            "node_type": HTTP,
            "config": {},
            "properties": [URL_PROP],
            "profile": "lenient",
        },
    )
    assert text.startswith("Error:")


async def test_score_resource_locator(mcp_configured: None) -> None:
    text = await _call(
        "score_resource_locator",
        {"field_name": "sheetId", "node_type": SHEETS},
    )
    payload = json.loads(text)
    assert payload["value"] == pytest.approx(0.9)
    assert payload["level"] == "high"


async def test_get_type_structure(mcp_configured: None) -> None:
    payload = json.loads(
        await _call("get_type_structure", {"type_id": "filter"})
    )
    assert payload["type"] == "filter"
    assert payload["category"] == "special"

    text = await _call("get_type_structure", {"type_id": "hologram"})
    assert "Unknown property type" in text


async def test_analyze_node_version(mcp_configured: None) -> None:
    payload = json.loads(
        await _call(
            "analyze_node_version",
            {"node_type": HTTP, "current_version": "4.0"},
        )
    )
    assert payload["is_outdated"] is True
    assert payload["latest_version"] == "4.2"
    assert payload["recommend_upgrade"] is True


async def test_analyze_invalid_version(mcp_configured: None) -> None:
    text = await _call(
        "analyze_node_version",
        {"node_type": HTTP, "current_version": "four"},
    )
    assert text.startswith("Error:")


async def test_suggest_upgrade_path(mcp_configured: None) -> None:
    payload = json.loads(
        await _call(
            "suggest_upgrade_path",
            {"node_type": HTTP, "current_version": "4.0"},
        )
    )
    assert payload["from_version"] == "4.0"
    assert payload["to_version"] == "4.2"
    assert payload["steps"]


async def test_suggest_upgrade_path_current(mcp_configured: None) -> None:
    text = await _call(
        "suggest_upgrade_path",
        {"node_type": HTTP, "current_version": "4.2"},
    )
    assert "No upgrade needed" in text


def test_unconfigured_raises() -> None:
    import flowcheck.mcp.server as mod

    original = mod._state
    mod._state = None
    try:
        with pytest.raises(RuntimeError, match="not configured"):
            get_state()
    finally:
        mod._state = original
