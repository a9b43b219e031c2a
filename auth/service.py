"""
auth/service.py -- Account registration, login, and current-user lookup.

register() is the only code path that creates a User. Both register() and
login() end by issuing a bearer token from the injected TokenService.

Security:
  login() runs bcrypt whether or not the email exists. An unknown email is
  verified against the hasher's dummy digest, so response time does not
  reveal which addresses are registered. Wrong email and wrong password raise
  the same InvalidCredentials error.

Layer rule: no imports from api/ or posts/.
"""

from __future__ import annotations

import logging

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import IntegrityError

from auth.avatar import email_to_avatar_ref
from auth.models import User
from auth.passwords import MAX_PASSWORD_BYTES, PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings
from core.errors import (
    DuplicateUser,
    FieldError,
    InvalidCredentials,
    NotFound,
    ValidationError,
    store_errors,
)

logger = logging.getLogger("postboard.auth")

MIN_PASSWORD_LENGTH = 8


class AccountService:
    def __init__(
        self,
        users: UserStore,
        hasher: PasswordHasher,
        tokens: TokenService,
        settings: Settings,
    ) -> None:
        self.users = users
        self.hasher = hasher
        self.tokens = tokens
        self.settings = settings

    def register(self, name: str, email: str, password: str) -> str:
        """Create an account and return a bearer token for it.

        Raises ValidationError (all failed fields at once), DuplicateUser if
        the email is taken, InternalError on store failure.
        """
        name = (name or "").strip()
        errors: list[FieldError] = []
        if not name:
            errors.append(FieldError("name", "Name is required"))
        normalized_email = _normalize_email(email)
        if normalized_email is None:
            errors.append(FieldError("email", "Please include a valid email"))
        password = password or ""
        if len(password) < MIN_PASSWORD_LENGTH:
            errors.append(FieldError("password", "Please enter a password with 8 or more characters"))
        elif len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            errors.append(FieldError("password", "Password must be at most 72 bytes"))
        if errors:
            raise ValidationError(errors)

        with store_errors(logger, "register user"):
            if self.users.get_by_email(normalized_email) is not None:
                raise DuplicateUser()

            user = User(
                name=name,
                email=normalized_email,
                hashed_password=self.hasher.hash(password),
                avatar=email_to_avatar_ref(
                    normalized_email,
                    size=self.settings.avatar_size,
                    rating=self.settings.avatar_rating,
                    default=self.settings.avatar_default,
                ),
            )
            try:
                user_id = self.users.create_user(user)
            except IntegrityError as exc:
                # A concurrent registration claimed the address after the pre-check.
                raise DuplicateUser() from exc

        logger.info("Registered user %d", user_id)
        return self.tokens.issue(user_id, self.settings.token_expire_seconds)

    def login(self, email: str, password: str) -> str:
        """Exchange email and password for a bearer token. Raises InvalidCredentials."""
        normalized_email = _normalize_email(email)
        user = None
        if normalized_email is not None:
            with store_errors(logger, "look up user"):
                user = self.users.get_by_email(normalized_email)
        if user is None:
            self.hasher.dummy_verify(password or "")
            raise InvalidCredentials()
        if not self.hasher.verify(password or "", user.hashed_password):
            raise InvalidCredentials()
        return self.tokens.issue(user.id, self.settings.token_expire_seconds)

    def current_user(self, user_id: int) -> User:
        with store_errors(logger, "load current user"):
            user = self.users.get_by_id(user_id)
        if user is None:
            raise NotFound("User not found.")
        return user


def _normalize_email(email: str | None) -> str | None:
    """Return the normalized address, or None if it is not syntactically valid."""
    if not email:
        return None
    try:
        return validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError:
        return None
