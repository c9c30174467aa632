"""Health check endpoints."""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from flowcheck import __version__

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    """Basic health check for load balancers."""
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/health/detailed")
async def health_detailed(request: Request) -> dict[str, object]:
    """Detailed health check with component-level status."""
    db_healthy = True
    try:
        async with request.app.state.session_factory() as session:
            await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("event=health_db_check_failed", exc_info=True)
        db_healthy = False

    return {
        "status": "healthy" if db_healthy else "degraded",
        "version": __version__,
        "components": {
            "database": {
                "status": "connected" if db_healthy else "disconnected"
            },
            "version_cache": {
                "entries": len(request.app.state.version_cache),
            },
        },
        "timestamp": datetime.now(UTC).isoformat(),
    }
