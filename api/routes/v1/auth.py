"""
api/routes/v1/auth.py -- Login and current-user endpoints.

Routes:
  POST /api/v1/auth  -- email + password login; returns a bearer token (public)
  GET  /api/v1/auth  -- the authenticated user's account (requires auth)

Security:
  AccountService.login() equalizes timing between unknown email and wrong
  password and raises the same InvalidCredentials for both -- never inline
  get_by_email() + verify() here.
  Cache-Control: no-store on token responses.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import LoginRequest, TokenResponse, UserResponse
from auth.dependencies import get_current_user
from auth.models import User
from auth.service import AccountService

# Auth policy:
# - POST /api/v1/auth: public -- login endpoint must be unauthenticated
# - GET  /api/v1/auth: requires auth (get_current_user)
router = APIRouter()


@router.post("/auth", response_model=TokenResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password and return a bearer token."""
    accounts: AccountService = request.app.state.accounts
    token = accounts.login(body.email, body.password)
    resp = JSONResponse(
        content=TokenResponse(token=token, expires_in=accounts.settings.token_expire_seconds).model_dump()
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the account behind the presented token."""
    return UserResponse.from_user(current_user)
