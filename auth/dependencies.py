"""
auth/dependencies.py -- FastAPI Depends() helpers: the auth gate.

Token sources, checked in priority order:
  1. x-auth-token header -- the designated bearer token field.
  2. Authorization: Bearer <token> -- accepted for generic HTTP clients.

The gate is stateless. Each request is verified exactly once, on entry; a
token that expires while the request is being processed is not re-checked.
A failed verification is never retried.

get_current_user_id() is the gate itself: it raises AuthError (rendered as
401 by api/main.py) or returns the authenticated user id, which it also
stores on request.state.user_id for the rest of the request.

get_current_user() wraps the gate and loads the account record.

Layer rule: no imports from api/ or posts/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.models import User
from auth.service import AccountService
from auth.tokens import TokenService
from core.errors import AuthError, AuthFailure

logger = logging.getLogger("postboard.auth")

TOKEN_HEADER = "x-auth-token"


def extract_token(request: Request) -> str | None:
    """Return the raw token from the request headers, or None if absent."""
    token = request.headers.get(TOKEN_HEADER, "").strip()
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def get_current_user_id(request: Request) -> int:
    """Require a valid bearer token and return the user id it carries.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user_id: int = Depends(get_current_user_id)): ...
    """
    token = extract_token(request)
    if token is None:
        raise AuthError(AuthFailure.MISSING)

    tokens: TokenService = request.app.state.tokens
    try:
        user_id = tokens.verify(token)
    except AuthError as exc:
        logger.info("Rejected token on %s %s: %s", request.method, request.url.path, exc.reason.value)
        raise

    request.state.user_id = user_id
    return user_id


def get_current_user(request: Request) -> User:
    """Require authentication and return the caller's account record."""
    user_id = get_current_user_id(request)
    accounts: AccountService = request.app.state.accounts
    return accounts.current_user(user_id)
