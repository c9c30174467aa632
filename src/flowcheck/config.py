"""Environment-based configuration."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from flowcheck.constants import (
    DEFAULT_UPGRADE_PLAN_TIMEOUT_SECONDS,
    DEFAULT_VERSION_CACHE_TTL_SECONDS,
    ProfileName,
)

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Reads from .env file and environment variables."""

    # Database
    database_url: str = "sqlite:///data/flowcheck.db"

    # Logging
    log_level: str = "INFO"
    debug_mode: bool = False

    # Validation
    default_profile: str = ProfileName.AI_FRIENDLY
    locator_heuristics_path: Path | None = None  # None = packaged data

    # Versions
    version_cache_ttl_seconds: float = DEFAULT_VERSION_CACHE_TTL_SECONDS
    upgrade_plan_timeout_seconds: float = (
        DEFAULT_UPGRADE_PLAN_TIMEOUT_SECONDS
    )
    breaking_changes_path: Path | None = None  # None = packaged data

    # API
    api_key: str = ""
    cors_origins: str = "http://localhost:3000"

    @field_validator("default_profile")
    @classmethod
    def _validate_profile(cls, v: str) -> str:
        known = [p.value for p in ProfileName]
        if v not in known:
            raise ValueError(
                f"default_profile must be one of: {', '.join(known)}"
            )
        return v

    @field_validator(
        "version_cache_ttl_seconds", "upgrade_plan_timeout_seconds"
    )
    @classmethod
    def _validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            logger.warning(
                "event=unknown_log_level value=%s fallback=INFO", v
            )
            return "INFO"
        return level

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "FLOWCHECK_",
        "extra": "ignore",
    }


def create_app_engine(
    url: str, *, echo: bool = False
) -> AsyncEngine:
    """Create async SQLite engine with WAL journal mode.

    Handles URL conversion (sqlite:/// → sqlite+aiosqlite:///)
    and sets WAL mode via a pool-connect event listener so it
    fires once per raw DBAPI connection, not per ORM session.
    """
    if url.startswith("sqlite:///"):
        db_url = "sqlite+aiosqlite:///" + url[len("sqlite:///"):]
    else:
        db_url = url
    engine = create_async_engine(db_url, echo=echo)

    @event.listens_for(engine.sync_engine, "connect")
    def _set_wal_mode(
        dbapi_conn: object,
        _connection_record: object,
    ) -> None:
        cursor = dbapi_conn.cursor()  # type: ignore[union-attr]
        cursor.execute("PRAGMA journal_mode=WAL")  # pyright: ignore[reportUnknownMemberType]
        cursor.close()  # pyright: ignore[reportUnknownMemberType]

    return engine
