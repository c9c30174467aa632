"""Shared test fixtures: in-memory SQLite, fakes, app state."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from flowcheck.api.dependencies import get_version_service
from flowcheck.config import Settings
from flowcheck.main import app
from flowcheck.models.base import Base
from flowcheck.repositories.fakes import FakeNodeRepository
from flowcheck.validation.profiles import ProfileConfig, get_profile
from flowcheck.versions.breaking_changes import load_registry
from flowcheck.versions.cache import VersionCache
from flowcheck.versions.schemas import VersionMetadata
from flowcheck.versions.service import create_version_service

SHEETS = "n8n-nodes-base.googleSheets"
HTTP = "n8n-nodes-base.httpRequest"
WEBHOOK = "n8n-nodes-base.webhook"


def seed_http_versions(repo: FakeNodeRepository) -> None:
    """httpRequest at 4.0/4.1/4.2; 4.2 adds a required property."""
    base: list[dict[str, Any]] = [
        {"name": "url", "type": "string", "required": True},
        {"name": "method", "type": "options"},
    ]
    repo.add(VersionMetadata(node_type=HTTP, version="4.0",
                             properties_schema=base))
    repo.add(VersionMetadata(node_type=HTTP, version="4.1",
                             properties_schema=base))
    repo.add(
        VersionMetadata(
            node_type=HTTP,
            version="4.2",
            is_current_max=True,
            properties_schema=[
                *base,
                {"name": "authentication", "type": "options",
                 "required": True},
            ],
        )
    )


def setup_test_app(
    session_factory: async_sessionmaker[AsyncSession],
    repo: FakeNodeRepository,
    **settings: Any,
) -> None:
    """Common app-state setup for API test fixtures.

    The ASGI transport does not run the lifespan, so state is set
    directly and the version service is overridden with the fake repo.
    """
    app.state.settings = Settings(
        database_url="sqlite:///:memory:", **settings
    )
    app.state.session_factory = session_factory
    app.state.heuristics = None
    app.state.registry = load_registry()
    app.state.version_cache = VersionCache()
    app.dependency_overrides[get_version_service] = (
        lambda: create_version_service(repo, app.state.registry)
    )


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """Function-scoped in-memory engine shared across connections."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_repo() -> FakeNodeRepository:
    return FakeNodeRepository()


@pytest.fixture
def ai_friendly() -> ProfileConfig:
    return get_profile("ai-friendly")


@pytest.fixture
def strict() -> ProfileConfig:
    return get_profile("strict")


@pytest.fixture
def minimal() -> ProfileConfig:
    return get_profile("minimal")


@pytest.fixture
def runtime() -> ProfileConfig:
    return get_profile("runtime")
