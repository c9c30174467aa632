"""Tests for API routes using httpx AsyncClient."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from flowcheck.api.middleware.auth import requires_api_key
from flowcheck.main import app
from flowcheck.repositories.fakes import FakeNodeRepository
from flowcheck.versions.schemas import VersionMetadata
from tests.conftest import (
    HTTP,
    SHEETS,
    WEBHOOK,
    seed_http_versions,
    setup_test_app,
)

URL_PROP: dict[str, Any] = {
    "name": "url",
    "type": "string",
    "required": True,
}


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    fake_repo: FakeNodeRepository,
) -> AsyncIterator[AsyncClient]:
    """Test client backed by the fake version repository."""
    seed_http_versions(fake_repo)
    setup_test_app(session_factory, fake_repo)

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport, base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()


class TestHealthRoutes:
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert "version" in data

    async def test_health_detailed(self, client: AsyncClient) -> None:
        resp = await client.get("/api/health/detailed")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["components"]["database"]["status"] == "connected"
        assert data["components"]["version_cache"]["entries"] == 0


class TestValidationRoutes:
    async def test_validate_valid(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/validate",
            json={
                "node_type": HTTP,
                "config": {"url": "https://example.com"},
                "properties": [URL_PROP],
            },
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["valid"] is True
        assert body["data"]["profile"] == "ai-friendly"

    async def test_validate_missing_required(
        self, client: AsyncClient
    ) -> None:
        resp = await client.post(
            "/api/validate",
            json={
                "node_type": HTTP,
                "config": {},
                "properties": [URL_PROP],
                "profile": "minimal",
            },
        )
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["valid"] is False
        assert body["data"]["errors"][0]["property"] == "url"

    async def test_validate_unknown_profile(
        self, client: AsyncClient
    ) -> None:
        resp = await client.post(
            "/api/validate",
            json={"node_type": HTTP, "profile": "lenient"},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is False
        assert "lenient" in body["error"]

    async def test_validate_rejects_empty_node_type(
        self, client: AsyncClient
    ) -> None:
        resp = await client.post("/api/validate", json={"node_type": ""})
        assert resp.status_code == 422

    async def test_batch(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/validate/batch",
            json={
                "items": [
                    {
                        "node_type": HTTP,
                        "config": {"url": "https://example.com"},
                        "properties": [URL_PROP],
                    },
                    {
                        "node_type": HTTP,
                        "config": {},
                        "properties": [URL_PROP],
                    },
                ],
                "profile": "strict",
            },
        )
        body = resp.json()
        assert body["success"] is True
        assert [r["valid"] for r in body["data"]] == [True, False]
        assert body["metadata"] == {"total": 2, "invalid": 1}

    async def test_score(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/score",
            json={
                "field_name": "sheetId",
                "node_type": SHEETS,
                "threshold": "strict",
            },
        )
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["level"] == "high"
        assert body["metadata"]["apply"] is True
        assert body["metadata"]["threshold"] == "strict"

    async def test_score_rejects_unknown_threshold(
        self, client: AsyncClient
    ) -> None:
        resp = await client.post(
            "/api/score",
            json={
                "field_name": "sheetId",
                "node_type": SHEETS,
                "threshold": "loose",
            },
        )
        assert resp.status_code == 422

    async def test_list_types(self, client: AsyncClient) -> None:
        resp = await client.get("/api/types")
        body = resp.json()
        assert body["success"] is True
        type_ids = {t["type"] for t in body["data"]}
        assert {"string", "filter", "resourceLocator"} <= type_ids

    async def test_get_type(self, client: AsyncClient) -> None:
        resp = await client.get("/api/types/resourceLocator")
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["type"] == "resourceLocator"

    async def test_get_unknown_type(self, client: AsyncClient) -> None:
        resp = await client.get("/api/types/hologram")
        body = resp.json()
        assert body["success"] is False
        assert "hologram" in body["error"]


class TestVersionRoutes:
    async def test_list_versions(self, client: AsyncClient) -> None:
        resp = await client.get(f"/api/versions/{HTTP}")
        body = resp.json()
        assert body["success"] is True
        assert body["data"] == ["4.0", "4.1", "4.2"]
        assert body["metadata"]["latest"] == "4.2"

    async def test_list_versions_unknown(
        self, client: AsyncClient
    ) -> None:
        resp = await client.get(f"/api/versions/{SHEETS}")
        body = resp.json()
        assert body["success"] is False
        assert "No version data" in body["error"]

    async def test_analyze(self, client: AsyncClient) -> None:
        resp = await client.get(
            f"/api/versions/{HTTP}/analyze",
            params={"current_version": "4.1"},
        )
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["is_outdated"] is True
        assert body["data"]["version_gap"] == 1

    async def test_analyze_breaking(
        self, client: AsyncClient, fake_repo: FakeNodeRepository
    ) -> None:
        fake_repo.add(VersionMetadata(node_type=WEBHOOK, version="2.0"))
        fake_repo.add(
            VersionMetadata(
                node_type=WEBHOOK, version="2.1", is_current_max=True
            )
        )
        resp = await client.get(
            f"/api/versions/{WEBHOOK}/analyze",
            params={"current_version": "2.0"},
        )
        data = resp.json()["data"]
        assert data["has_breaking_changes"] is True
        assert data["confidence"] == "MEDIUM"

    async def test_analyze_invalid_version(
        self, client: AsyncClient
    ) -> None:
        resp = await client.get(
            f"/api/versions/{HTTP}/analyze",
            params={"current_version": "4.x"},
        )
        body = resp.json()
        assert body["success"] is False
        assert "4.x" in body["error"]

    async def test_upgrade_path(self, client: AsyncClient) -> None:
        resp = await client.get(
            f"/api/versions/{HTTP}/upgrade-path",
            params={"current_version": "4.0"},
        )
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["from_version"] == "4.0"
        assert body["data"]["to_version"] == "4.2"

    async def test_upgrade_path_not_needed(
        self, client: AsyncClient
    ) -> None:
        resp = await client.get(
            f"/api/versions/{HTTP}/upgrade-path",
            params={"current_version": "4.2"},
        )
        body = resp.json()
        assert body["success"] is True
        assert body["data"] is None
        assert body["metadata"]["message"] == "No upgrade needed"


class TestApiKey:
    @pytest.fixture
    async def keyed_client(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        fake_repo: FakeNodeRepository,
    ) -> AsyncIterator[AsyncClient]:
        setup_test_app(session_factory, fake_repo, api_key="secret")
        transport = ASGITransport(app=app)
        async with AsyncClient(
            transport=transport, base_url="http://test"
        ) as c:
            yield c
        app.dependency_overrides.clear()

    async def test_missing_key_rejected(
        self, keyed_client: AsyncClient
    ) -> None:
        resp = await keyed_client.get(
            f"/api/versions/{HTTP}/analyze",
            params={"current_version": "4.0"},
        )
        assert resp.status_code == 401
        assert resp.headers["WWW-Authenticate"] == "Bearer"
        body = resp.json()
        assert body["success"] is False
        assert body["data"] is None

    async def test_wrong_key_rejected(
        self, keyed_client: AsyncClient
    ) -> None:
        resp = await keyed_client.post(
            "/api/validate",
            json={"node_type": HTTP},
            headers={"X-API-Key": "guess"},
        )
        assert resp.status_code == 401

    async def test_header_key_accepted(
        self, keyed_client: AsyncClient
    ) -> None:
        resp = await keyed_client.post(
            "/api/validate",
            json={"node_type": HTTP},
            headers={"X-API-Key": "secret"},
        )
        assert resp.status_code == 200
        assert resp.json()["success"] is True

    async def test_bearer_key_accepted(
        self, keyed_client: AsyncClient
    ) -> None:
        resp = await keyed_client.get(
            f"/api/versions/{HTTP}",
            headers={"Authorization": "Bearer secret"},
        )
        assert resp.status_code == 200

    async def test_type_catalogue_public(
        self, keyed_client: AsyncClient
    ) -> None:
        assert (await keyed_client.get("/api/types")).status_code == 200
        resp = await keyed_client.get("/api/types/filter")
        assert resp.status_code == 200

    async def test_health_exempt(self, keyed_client: AsyncClient) -> None:
        resp = await keyed_client.get("/api/health")
        assert resp.status_code == 200


@pytest.mark.parametrize(
    ("method", "path", "guarded"),
    [
        ("GET", "/api/health", False),
        ("GET", "/api/docs", False),
        ("GET", "/api/types", False),
        ("GET", "/api/types/resourceLocator", False),
        ("POST", "/api/types", True),
        ("POST", "/api/validate", True),
        ("POST", "/api/score", True),
        ("GET", "/api/versions/acme", True),
        ("GET", "/favicon.ico", False),
    ],
)
def test_requires_api_key(method: str, path: str, guarded: bool) -> None:
    assert requires_api_key(method, path) is guarded
