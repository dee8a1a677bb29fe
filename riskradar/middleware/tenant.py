"""
Tenant Middleware.

Extracts the JWT from the Authorization header and attaches organization_id
and user_id to request.state. Every non-public route requires a valid token.
"""

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from riskradar.auth.jwt import TokenError, decode_token

logger = structlog.get_logger(__name__)

PUBLIC_PATHS = frozenset({
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
})


class TenantMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path

        # CORS preflight is handled by CORSMiddleware
        if request.method == "OPTIONS":
            return await call_next(request)

        if path in PUBLIC_PATHS or path.rstrip("/") in PUBLIC_PATHS:
            return await call_next(request)

        token = self._extract_token(request)
        if not token:
            return JSONResponse(status_code=401, content={"detail": "Missing authentication token"})

        try:
            payload = decode_token(token)
        except TokenError as e:
            logger.warning("tenant_auth_failed", error=str(e), path=path)
            return JSONResponse(status_code=401, content={"detail": "Invalid or expired token"})

        request.state.organization_id = payload["organization_id"]
        request.state.user_id = payload["user_id"]
        request.state.user_email = payload.get("email", "")
        structlog.contextvars.bind_contextvars(organization_id=payload["organization_id"])

        return await call_next(request)

    @staticmethod
    def _extract_token(request: Request) -> str | None:
        auth = request.headers.get("Authorization", "")
        if auth.startswith("Bearer "):
            return auth[7:]
        return None
