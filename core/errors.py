"""
core/errors.py -- Typed error taxonomy shared by every postboard layer.

Services fail fast by raising one of these. Nothing below api/ knows about
HTTP; each class only carries the status code its transport mapping should
use. api/main.py is the single boundary that renders them into the JSON
error envelope.

  AppError
    ValidationError      400  client input malformed, carries field detail
    InvalidCredentials   400  login with unknown email or wrong password
    AuthError            401  missing / malformed / forged / expired token
    Forbidden            403  authenticated, but not the owner
    NotFound             404  resource absent
    Conflict             400  state precondition violated
      AlreadyLiked
      NotLiked
      DuplicateUser
    InternalError        500  store or unexpected failure, generic message

Layer rule: core/ is the kernel. No imports from api/, auth/, or posts/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError


@dataclass(frozen=True)
class FieldError:
    """One failed input check, addressed by the request field name."""

    field: str
    message: str


class AppError(Exception):
    """Base class for every error a postboard operation can raise on purpose."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"
    message = "Request validation failed."

    def __init__(self, errors: list[FieldError]) -> None:
        super().__init__()
        self.errors = errors


class InvalidCredentials(AppError):
    # Same message for unknown email and wrong password so the response does
    # not reveal which accounts exist.
    status_code = 400
    code = "invalid_credentials"
    message = "Invalid credentials."


class AuthFailure(str, Enum):
    MISSING = "missing"
    MALFORMED = "malformed"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"


class AuthError(AppError):
    """Token rejected by the auth gate.

    reason is kept for logging and tests only. The HTTP response says
    "missing token" or "invalid token" and nothing more, so a client cannot
    learn which check failed.
    """

    status_code = 401
    code = "unauthorized"

    def __init__(self, reason: AuthFailure) -> None:
        self.reason = reason
        super().__init__("missing token" if reason is AuthFailure.MISSING else "invalid token")


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"
    message = "User not authorized."


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    message = "Resource not found."


class Conflict(AppError):
    status_code = 400
    code = "conflict"
    message = "Request conflicts with current state."


class AlreadyLiked(Conflict):
    code = "already_liked"
    message = "Post already liked."


class NotLiked(Conflict):
    code = "not_liked"
    message = "Post has not yet been liked."


class DuplicateUser(Conflict):
    code = "duplicate_user"
    message = "User already exists."


class InternalError(AppError):
    """Store or unexpected failure. The cause is logged, never returned."""


@contextmanager
def store_errors(logger: logging.Logger, action: str) -> Iterator[None]:
    """Re-raise database failures inside the block as InternalError.

    The full exception is logged here with its traceback; the InternalError
    that escapes carries only the generic message. AppError subclasses raised
    inside the block pass through untouched.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Store failure while trying to %s", action)
        raise InternalError() from exc
