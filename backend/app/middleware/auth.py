"""Bearer session authentication middleware.

Every /api/v1 route except the public auth endpoints needs a signed session
token (see app.security.session_token). The token is read from:
  1. Authorization: Bearer <token>
  2. the `authToken` cookie (web client)

On success the user id is stored on request.state.user_id; routes read it
through the current_user_id dependency.

Exempt paths: /health, /docs, /openapi.json, /redoc, / and the public auth
routes (register, login, device bootstrap, password reset).
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from app.security.session_token import get_signing_secret, verify_session_token

logger = logging.getLogger(__name__)

# Paths that don't require authentication
_EXEMPT_PATHS = frozenset({"/health", "/docs", "/openapi.json", "/redoc", "/"})

_PUBLIC_AUTH_PATHS = frozenset({
    "/api/v1/auth/register",
    "/api/v1/auth/login",
    "/api/v1/auth/device",
    "/api/v1/auth/forgot-password",
    "/api/v1/auth/reset-password",
})

_PROTECTED_PREFIX = "/api/v1/"

COOKIE_NAME = "authToken"


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """Validates the session token and attaches the caller's user id."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if path in _EXEMPT_PATHS or path in _PUBLIC_AUTH_PATHS or not path.startswith(_PROTECTED_PREFIX):
            return await call_next(request)

        token = self._extract_token(request)
        if token is None:
            return JSONResponse(
                status_code=401,
                content={"detail": "Authentication required. Use Authorization: Bearer <token>."},
            )

        user_id = verify_session_token(token=token, secret=get_signing_secret())
        if user_id is None:
            logger.warning(
                "Invalid or expired token from %s on %s",
                request.client.host if request.client else "unknown",
                path,
            )
            return JSONResponse(status_code=401, content={"detail": "Invalid or expired token."})

        request.state.user_id = user_id
        return await call_next(request)

    @staticmethod
    def _extract_token(request: Request) -> str | None:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            return auth_header[7:] or None
        return request.cookies.get(COOKIE_NAME) or None


def current_user_id(request: Request) -> str:
    """FastAPI dependency: the authenticated caller's user id."""
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise HTTPException(status_code=401, detail="Authentication required.")
    return user_id
