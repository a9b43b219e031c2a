"""
api/routes/v1/users.py -- Account registration.

Routes:
  POST /api/v1/users  -- register; returns a bearer token (public)

Registration is the only way an account is created. The response carries a
token so the client is signed in immediately.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.models import RegisterRequest, TokenResponse
from auth.service import AccountService

# Auth policy:
# - POST /api/v1/users: public -- a new user has no token yet
router = APIRouter()


@router.post("/users", response_model=TokenResponse)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account and return a bearer token.

    400 validation_error with per-field messages on bad input; 400
    duplicate_user if the email is already registered.
    """
    accounts: AccountService = request.app.state.accounts
    token = accounts.register(body.name, body.email, body.password)
    resp = JSONResponse(
        content=TokenResponse(token=token, expires_in=accounts.settings.token_expire_seconds).model_dump()
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp
