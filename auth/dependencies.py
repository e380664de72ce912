"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The session id is read from one of two places, in priority order:
  1. The signed session cookie -- set by POST /auth/login.
  2. Authorization: Bearer <cookie value> -- API clients that stored the
     token returned by the login response.

Both carry the same signed JWT; the session row behind it decides whether the
request is authenticated.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises HTTP 401 if unauthenticated.

Layer rule: no imports from api/, board/, or notify/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.authenticator import SessionAuthenticator
from auth.models import User
from auth.tokens import _settings, decode_session_cookie


def get_session_id(request: Request) -> str | None:
    """Return the verified session id carried by the request, or None."""
    token: str | None = request.cookies.get(_settings.session_cookie_name)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
    if not token:
        return None
    return decode_session_cookie(token)


def try_get_current_user(request: Request) -> User | None:
    """Resolve the request to a user. Never raises for an anonymous request."""
    session_id = get_session_id(request)
    if session_id is None:
        return None
    authenticator: SessionAuthenticator = request.app.state.authenticator
    return authenticator.current_user(session_id)


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return user
