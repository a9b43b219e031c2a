"""
API request and response models for postboard REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
posts/models.py, which own the internal domain representation. Route handlers
map between the two.

Request models only describe shape (which fields, which types). Content rules
-- non-empty name and text, email syntax, password length -- are checked by
the services so the same rules apply to any caller, not just HTTP.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from auth.models import User
from posts.models import Like, Post

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/users."""

    name: str = ""
    email: str = ""
    password: str = ""


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth."""

    email: str = ""
    password: str = ""


class PostCreate(BaseModel):
    """Request body for POST /api/v1/posts."""

    text: str = ""


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class TokenResponse(BaseModel):
    """Returned by registration and login. token goes in the x-auth-token header."""

    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"
    expires_in: int


class UserResponse(BaseModel):
    """Public view of an account. The password hash is never part of it."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    avatar: str
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            avatar=user.avatar,
            created_at=user.created_at or "",
        )


class LikeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int

    @classmethod
    def from_like(cls, like: Like) -> "LikeResponse":
        return cls(user_id=like.user_id)


class PostResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    author_id: int
    name: str
    avatar: str
    text: str
    created_at: str
    likes: list[LikeResponse]

    @classmethod
    def from_post(cls, post: Post) -> "PostResponse":
        """Factory Method -- the mapping lives beside the output model, not in each route."""
        return cls(
            id=post.id,
            author_id=post.author_id,
            name=post.author_name,
            avatar=post.author_avatar,
            text=post.text,
            created_at=post.created_at,
            likes=[LikeResponse.from_like(like) for like in post.likes],
        )


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class FieldErrorDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload.

    fields is set only for validation errors, one entry per failed input.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    fields: Optional[list[FieldErrorDetail]] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
