"""Optional API key check for the validation and version routes.

Health, docs and GETs on the type-structure catalogue stay public.
Everything that runs validation or touches stored version data needs
the key once ``Settings.api_key`` is set. The key is accepted from
``X-API-Key`` or as an ``Authorization: Bearer`` token.
"""

from __future__ import annotations

import hmac
import logging

from fastapi import Request, Response
from starlette.middleware.base import (
    BaseHTTPMiddleware,
    RequestResponseEndpoint,
)
from starlette.responses import JSONResponse

from flowcheck.api.schemas import APIResponse
from flowcheck.constants import (
    AUTH_EXEMPT_PATHS,
    AUTH_HEADER,
    AUTH_PUBLIC_READ_PREFIXES,
)

logger = logging.getLogger(__name__)


def requires_api_key(method: str, path: str) -> bool:
    """Whether ``method path`` is guarded when a key is configured."""
    if path in AUTH_EXEMPT_PATHS:
        return False
    if method in ("GET", "HEAD") and path.startswith(
        AUTH_PUBLIC_READ_PREFIXES
    ):
        return False
    return path.startswith("/api/")


def provided_key(request: Request) -> str:
    """Key from ``X-API-Key``, else from a Bearer token, else ''."""
    key = request.headers.get(AUTH_HEADER)
    if key:
        return key
    scheme, _, token = request.headers.get("Authorization", "").partition(
        " "
    )
    return token.strip() if scheme.lower() == "bearer" else ""


class ApiKeyMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        expected = request.app.state.settings.api_key
        if not expected or not requires_api_key(
            request.method, request.url.path
        ):
            return await call_next(request)

        if hmac.compare_digest(
            provided_key(request).encode(), expected.encode()
        ):
            return await call_next(request)

        logger.info(
            "event=api_key_rejected method=%s path=%s",
            request.method,
            request.url.path,
        )
        body = APIResponse(success=False, error="Invalid or missing API key")
        return JSONResponse(
            status_code=401,
            content=body.model_dump(mode="json"),
            headers={"WWW-Authenticate": "Bearer"},
        )
