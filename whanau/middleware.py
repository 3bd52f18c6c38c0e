"""Request-level authentication middleware.

Extracts the JWT from the session cookie, validates it, and populates
``request.state.user`` (dict with id, username, role). Unauthenticated
requests to protected paths get a 401.

Also enforces double-submit CSRF protection on state-changing methods.
"""

from __future__ import annotations

import re
import secrets

import jwt as pyjwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from .auth import (
    _JWT_COOKIE_NAME,
    _should_refresh,
    create_jwt,
    decode_jwt,
    set_session_cookie,
)

# Paths that do NOT require authentication.
_PUBLIC_PATHS: list[re.Pattern[str]] = [
    re.compile(r"^/health$"),
    re.compile(r"^/auth/login$"),
    re.compile(r"^/auth/logout$"),
    re.compile(r"^/docs$"),
    re.compile(r"^/openapi\.json$"),
]

# CSRF settings.
_CSRF_COOKIE_NAME = "whanau_csrf"
_CSRF_HEADER_NAME = "x-csrf-token"
_CSRF_TOKEN_LENGTH = 32
_CSRF_SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def _is_public(path: str) -> bool:
    return any(pat.search(path) for pat in _PUBLIC_PATHS)


def _ensure_csrf_cookie(request: Request, response: Response) -> None:
    """Set the CSRF cookie if not already present so JS can read it."""
    if request.cookies.get(_CSRF_COOKIE_NAME):
        return
    response.set_cookie(
        key=_CSRF_COOKIE_NAME,
        value=secrets.token_hex(_CSRF_TOKEN_LENGTH),
        httponly=False,  # JS must be able to read it.
        samesite="lax",
        path="/",
    )


def _csrf_ok(request: Request) -> bool:
    if request.method in _CSRF_SAFE_METHODS:
        return True
    cookie = request.cookies.get(_CSRF_COOKIE_NAME, "")
    header = request.headers.get(_CSRF_HEADER_NAME, "")
    return bool(cookie) and bool(header) and secrets.compare_digest(cookie, header)


class AuthMiddleware(BaseHTTPMiddleware):
    """Starlette middleware that enforces JWT-based authentication and CSRF."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if _is_public(request.url.path):
            response = await call_next(request)
            _ensure_csrf_cookie(request, response)
            return response

        token = request.cookies.get(_JWT_COOKIE_NAME)
        if not token:
            return JSONResponse({"detail": "Not authenticated"}, status_code=401)

        try:
            claims = decode_jwt(token)
        except pyjwt.ExpiredSignatureError:
            return JSONResponse({"detail": "Session expired"}, status_code=401)
        except pyjwt.PyJWTError:
            return JSONResponse({"detail": "Invalid session"}, status_code=401)

        if not _csrf_ok(request):
            return JSONResponse({"detail": "CSRF token mismatch"}, status_code=403)

        request.state.user = {
            "id": str(claims["sub"]),
            "username": claims.get("username", ""),
            "role": claims.get("role", "MEMBER"),
        }

        response = await call_next(request)
        _ensure_csrf_cookie(request, response)

        # Sliding window refresh: issue a new token when >50% of lifetime is gone.
        if _should_refresh(claims):
            set_session_cookie(
                response,
                create_jwt(
                    user_id=str(claims["sub"]),
                    username=claims.get("username", ""),
                    role=claims.get("role", "MEMBER"),
                ),
            )
        return response
