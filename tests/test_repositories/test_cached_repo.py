"""Tests for the caching NodeRepository decorator."""

import pytest

from flowcheck.repositories.cached_repo import CachedNodeRepository
from flowcheck.repositories.fakes import FakeNodeRepository
from flowcheck.repositories.protocols import CachingRepository
from flowcheck.versions.cache import VersionCache
from tests.conftest import HTTP, SHEETS, seed_http_versions


class Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def cached(
    fake_repo: FakeNodeRepository, clock: Clock
) -> CachedNodeRepository:
    seed_http_versions(fake_repo)
    return CachedNodeRepository(
        fake_repo, VersionCache(ttl_seconds=60, clock=clock)
    )


async def test_versions_cached(
    cached: CachedNodeRepository, fake_repo: FakeNodeRepository
) -> None:
    first = await cached.get_available_versions(HTTP)
    second = await cached.get_available_versions(HTTP)
    assert first == second
    assert fake_repo.calls == 1
    assert len(cached.cache) == 1


async def test_cache_is_per_node_type(
    cached: CachedNodeRepository, fake_repo: FakeNodeRepository
) -> None:
    await cached.get_available_versions(HTTP)
    assert await cached.get_available_versions(SHEETS) == []
    assert fake_repo.calls == 2


async def test_expiry_refetches(
    cached: CachedNodeRepository,
    fake_repo: FakeNodeRepository,
    clock: Clock,
) -> None:
    await cached.get_available_versions(HTTP)
    clock.now = 60
    await cached.get_available_versions(HTTP)
    assert fake_repo.calls == 2


async def test_clear_cache(
    cached: CachedNodeRepository, fake_repo: FakeNodeRepository
) -> None:
    await cached.get_available_versions(HTTP)
    cached.clear_cache(HTTP)
    await cached.get_available_versions(HTTP)
    assert fake_repo.calls == 2


async def test_other_lookups_pass_through(
    cached: CachedNodeRepository,
) -> None:
    metadata = await cached.get_version_metadata(HTTP, "4.2")
    assert metadata is not None
    assert metadata.is_current_max
    structure = await cached.get_declared_type(HTTP, "authentication")
    assert structure is not None
    assert structure.type_id == "options"


def test_satisfies_caching_protocol(cached: CachedNodeRepository) -> None:
    assert isinstance(cached, CachingRepository)
    assert not isinstance(FakeNodeRepository(), CachingRepository)
