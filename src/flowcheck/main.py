"""FastAPI application with lifespan startup."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

# Singleton logging before any other flowcheck import logs
from flowcheck.logging_config import setup_logging

setup_logging()

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker  # noqa: E402

from flowcheck import __version__  # noqa: E402
from flowcheck.api.middleware.auth import ApiKeyMiddleware  # noqa: E402
from flowcheck.api.routes import health, validation, versions  # noqa: E402
from flowcheck.config import Settings, create_app_engine  # noqa: E402
from flowcheck.models.base import Base  # noqa: E402
from flowcheck.validation.scorer import load_heuristics  # noqa: E402
from flowcheck.versions.breaking_changes import load_registry  # noqa: E402
from flowcheck.versions.cache import VersionCache  # noqa: E402

_logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # 1. Use module-level settings (single source of truth)
    settings = _settings
    logging.getLogger().setLevel(settings.log_level)

    # 2. Create async SQLite engine (WAL set via pool-connect listener)
    engine = create_app_engine(
        settings.database_url, echo=settings.debug_mode
    )

    # 3. Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # 4. Load tuning data files
    heuristics = (
        load_heuristics(settings.locator_heuristics_path)
        if settings.locator_heuristics_path
        else None
    )
    registry = load_registry(settings.breaking_changes_path)

    # 5. Store in app.state
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = async_sessionmaker(
        engine, expire_on_commit=False
    )
    app.state.heuristics = heuristics
    app.state.registry = registry
    app.state.version_cache = VersionCache(
        ttl_seconds=settings.version_cache_ttl_seconds
    )

    # 6. Security: warn if auth is disabled
    if not settings.api_key:
        _logger.warning(
            "event=no_api_key action=all_endpoints_public"
        )
    _logger.info(
        "event=startup version=%s profile=%s breaking_changes=%d",
        __version__,
        settings.default_profile,
        len(registry),
    )

    yield

    # Cleanup
    await engine.dispose()


app = FastAPI(
    title="flowcheck",
    description=(
        "Workflow node configuration validation and"
        " version upgrade planning"
    ),
    version=__version__,
    openapi_url="/api/openapi.json",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan,
)

# Middleware stack (Starlette LIFO: last added = outermost = runs first)
#
# Inbound request order:
#   CORSMiddleware (outermost) -> ApiKeyMiddleware -> Router
#
# CORS must be outermost so OPTIONS preflight is answered before
# ApiKeyMiddleware rejects for missing X-API-Key.
_settings = Settings()
_cors_origins = [
    o.strip()
    for o in _settings.cors_origins.split(",")
    if o.strip()
]

app.add_middleware(ApiKeyMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-API-Key"],
    allow_credentials=False,
)

# Routes
app.include_router(health.router)
app.include_router(validation.router)
app.include_router(versions.router)
