from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.responses import JSONResponse

from portal.auth import decode_access_token, extract_token


class AuthMiddleware(BaseHTTPMiddleware):
    """Require a valid session token on API routes."""

    # Routes that don't require a session
    PUBLIC_PATHS = {
        "/api/health",
    }

    async def dispatch(self, request, call_next):
        path = request.url.path

        if not path.startswith("/api/"):
            return await call_next(request)

        if path in self.PUBLIC_PATHS:
            return await call_next(request)

        identity = decode_access_token(extract_token(request))
        if identity is None:
            return JSONResponse(
                status_code=401,
                content={"success": False, "error": "unauthorized", "detail": "Not authenticated"},
            )

        request.state.identity = identity
        return await call_next(request)


__all__ = ["AuthMiddleware"]
