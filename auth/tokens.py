"""
auth/tokens.py -- Signed, time-limited bearer tokens.

Security design decisions:
  Format: compact JWS (HS256) produced by python-jose. Claims are
       {"sub": "<id>", "user_id": <id>, "iat": <epoch>, "exp": <epoch>}.
       Possession of the token is sufficient for authorization; nothing binds
       it to a session or transport, and there is no revocation list -- a token
       dies only at exp.

  Verify-then-decode: verify() checks the signature over the raw segments
       with jws.verify() before any claim is parsed. Claims are never read
       from a token whose signature has not matched, so a forged user_id can
       never reach a caller. jwt.decode() is deliberately not used on the
       verify path: expiry is checked here against an injectable clock.

  Failure classes (AuthFailure):
       MALFORMED          not a three-segment compact token, or signed claims
                          that do not carry an integer user_id and exp
       INVALID_SIGNATURE  any three-segment token whose signature does not
                          verify -- including tokens whose header or payload
                          bytes were altered, and segments that are not the
                          canonical base64url spelling of their bytes
       EXPIRED            signature valid, now > exp

  SECRET_KEY: injected by the caller (api/main.py lifespan reads it from
       core.config.get_settings()). This module holds no module-level secret.

Layer rule: no imports from api/ or posts/. Import from core/ is allowed.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable

from jose import jws, jwt
from jose.exceptions import JWSError
from jose.utils import base64url_decode, base64url_encode

from core.errors import AuthError, AuthFailure

logger = logging.getLogger("postboard.auth")

_ALGORITHM = "HS256"


class TokenService:
    """Issues and verifies HS256 bearer tokens carrying a user id claim.

    Usage:
        tokens = TokenService(settings.secret_key, default_ttl=settings.token_expire_seconds)
        token = tokens.issue(user.id)
        user_id = tokens.verify(token)   # raises AuthError
    """

    def __init__(
        self,
        secret_key: str,
        default_ttl: int = 360000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret_key:
            raise ValueError("TokenService requires a non-empty secret key.")
        self._secret_key = secret_key
        self.default_ttl = default_ttl
        self._clock = clock

    def issue(self, user_id: int, ttl: int | None = None) -> str:
        """Encode a signed token for user_id that expires ttl seconds from now.

        Two tokens for the same user differ only in their time-dependent
        claims (iat, exp).
        """
        duration = self.default_ttl if ttl is None else ttl
        now = int(self._clock())
        claims = {
            "sub": str(user_id),
            "user_id": user_id,
            "iat": now,
            "exp": now + duration,
        }
        return jwt.encode(claims, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> int:
        """Return the user id a valid token carries. Raises AuthError otherwise."""
        if not isinstance(token, str) or token.count(".") != 2:
            raise AuthError(AuthFailure.MALFORMED)

        # The last base64url character of a segment can carry unused bits.
        # Variants differing only there decode to the same bytes, so only the
        # exact encoding that was signed is accepted.
        if not all(_is_canonical(segment) for segment in token.split(".")):
            raise AuthError(AuthFailure.INVALID_SIGNATURE)

        try:
            payload = jws.verify(token, self._secret_key, algorithms=[_ALGORITHM])
        except JWSError as exc:
            raise AuthError(AuthFailure.INVALID_SIGNATURE) from exc

        # Signature matched -- claims below were produced by the holder of the key.
        try:
            claims = json.loads(payload)
        except ValueError as exc:
            raise AuthError(AuthFailure.MALFORMED) from exc
        if not isinstance(claims, dict):
            raise AuthError(AuthFailure.MALFORMED)
        user_id = claims.get("user_id")
        expires_at = claims.get("exp")
        if not _is_int(user_id) or not _is_int(expires_at):
            raise AuthError(AuthFailure.MALFORMED)

        if self._clock() > expires_at:
            raise AuthError(AuthFailure.EXPIRED)
        return user_id


def _is_canonical(segment: str) -> bool:
    try:
        raw = segment.encode("ascii")
        return base64url_encode(base64url_decode(raw)) == raw
    except ValueError:
        return False


def _is_int(value: object) -> bool:
    # bool is an int subclass; a claim of `true` is not an id.
    return isinstance(value, int) and not isinstance(value, bool)
