"""Unit tests for auth/tokens.py -- bearer token issue and verify.

Covers:
- issued tokens verify to the same user id until exp, inclusive
- EXPIRED after exp
- altering any header/payload/signature character -> INVALID_SIGNATURE
- wrong key and alg=none -> INVALID_SIGNATURE
- wrong shape or unusable signed claims -> MALFORMED
"""

from __future__ import annotations

import pytest
from jose import jws, jwt

from auth.tokens import TokenService
from core.errors import AuthError, AuthFailure

_B64URL_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _failure(service: TokenService, token) -> AuthFailure:
    with pytest.raises(AuthError) as exc_info:
        service.verify(token)
    return exc_info.value.reason


def _replace_char(token: str, segment: int, index: int) -> str:
    parts = token.split(".")
    seg = parts[segment]
    replacement = "B" if seg[index] == "A" else "A"
    parts[segment] = seg[:index] + replacement + seg[index + 1 :]
    return ".".join(parts)


# ---------------------------------------------------------------------------
# Issue / verify
# ---------------------------------------------------------------------------


def test_verify_returns_issued_user_id(token_service: TokenService) -> None:
    token = token_service.issue(42)
    assert token_service.verify(token) == 42


def test_default_ttl_applies(token_service: TokenService, clock) -> None:
    token = token_service.issue(7)
    clock.advance(3600)
    assert token_service.verify(token) == 7
    clock.advance(1)
    assert _failure(token_service, token) is AuthFailure.EXPIRED


def test_valid_up_to_and_including_expiry(token_service: TokenService, clock) -> None:
    token = token_service.issue(1, ttl=60)
    clock.advance(59)
    assert token_service.verify(token) == 1
    clock.advance(1)
    assert token_service.verify(token) == 1


def test_expired_after_ttl(token_service: TokenService, clock) -> None:
    token = token_service.issue(1, ttl=60)
    clock.advance(61)
    assert _failure(token_service, token) is AuthFailure.EXPIRED


def test_tokens_differ_only_by_time(token_service: TokenService, clock) -> None:
    first = token_service.issue(5)
    clock.advance(1)
    second = token_service.issue(5)
    assert first != second
    assert token_service.verify(first) == token_service.verify(second) == 5


def test_claims_carry_user_and_expiry(token_service: TokenService, clock) -> None:
    token = token_service.issue(9, ttl=100)
    claims = jwt.get_unverified_claims(token)
    assert claims["user_id"] == 9
    assert claims["sub"] == "9"
    assert claims["exp"] == int(clock.now) + 100


def test_empty_secret_rejected() -> None:
    with pytest.raises(ValueError):
        TokenService("")


# ---------------------------------------------------------------------------
# Tampering
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("segment", [0, 1])
def test_any_header_or_payload_change_is_invalid_signature(token_service: TokenService, segment: int) -> None:
    token = token_service.issue(42)
    length = len(token.split(".")[segment])
    for index in range(length):
        tampered = _replace_char(token, segment, index)
        assert _failure(token_service, tampered) is AuthFailure.INVALID_SIGNATURE, f"index {index}"


def test_signature_change_is_invalid_signature(token_service: TokenService) -> None:
    token = token_service.issue(42)
    length = len(token.split(".")[2])
    for index in range(length):
        tampered = _replace_char(token, 2, index)
        assert _failure(token_service, tampered) is AuthFailure.INVALID_SIGNATURE, f"index {index}"


@pytest.mark.parametrize("segment", [0, 1, 2])
def test_every_final_character_substitution_is_invalid_signature(token_service: TokenService, segment: int) -> None:
    """Swapping the last character of a segment for any other base64url character never verifies.

    The last character can carry unused low bits, so some substitutions decode
    to the very same bytes as the original.
    """
    token = token_service.issue(42)
    parts = token.split(".")
    original = parts[segment][-1]
    accepted = []
    for char in _B64URL_ALPHABET:
        if char == original:
            continue
        parts_copy = list(parts)
        parts_copy[segment] = parts[segment][:-1] + char
        tampered = ".".join(parts_copy)
        try:
            accepted.append((char, token_service.verify(tampered)))
        except AuthError as exc:
            assert exc.reason is AuthFailure.INVALID_SIGNATURE, char
    assert accepted == []


def test_non_alphabet_character_is_invalid_signature(token_service: TokenService) -> None:
    token = token_service.issue(42)
    assert _failure(token_service, token + "!") is AuthFailure.INVALID_SIGNATURE


def test_forged_user_id_is_rejected(token_service: TokenService, clock) -> None:
    """A token re-signed with another key never yields its claimed user id."""
    forged = jwt.encode({"user_id": 1, "exp": int(clock.now) + 3600}, "x" * 40, algorithm="HS256")
    assert _failure(token_service, forged) is AuthFailure.INVALID_SIGNATURE


def test_unsigned_token_is_rejected(token_service: TokenService, clock) -> None:
    header = "eyJhbGciOiJub25lIiwidHlwIjoiSldUIn0"  # {"alg":"none","typ":"JWT"}
    payload = token_service.issue(1).split(".")[1]
    assert _failure(token_service, f"{header}.{payload}.") is AuthFailure.INVALID_SIGNATURE


def test_expired_forgery_reports_signature_not_expiry(token_service: TokenService, clock) -> None:
    """Signature is checked before any claim is trusted, including exp."""
    forged = jwt.encode({"user_id": 1, "exp": int(clock.now) - 10}, "y" * 40, algorithm="HS256")
    assert _failure(token_service, forged) is AuthFailure.INVALID_SIGNATURE


# ---------------------------------------------------------------------------
# Malformed
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("token", ["", "abc", "a.b", "a.b.c.d", None, 12345])
def test_wrong_shape_is_malformed(token_service: TokenService, token) -> None:
    assert _failure(token_service, token) is AuthFailure.MALFORMED


def test_signed_non_json_payload_is_malformed(token_service: TokenService, secret_key: str) -> None:
    token = jws.sign(b"not json", secret_key, algorithm="HS256")
    assert _failure(token_service, token) is AuthFailure.MALFORMED


@pytest.mark.parametrize(
    "claims",
    [
        {"exp": 1_900_000_000},
        {"user_id": 1},
        {"user_id": "1", "exp": 1_900_000_000},
        {"user_id": True, "exp": 1_900_000_000},
    ],
)
def test_signed_claims_without_usable_identity_are_malformed(
    token_service: TokenService, secret_key: str, claims: dict
) -> None:
    token = jwt.encode(claims, secret_key, algorithm="HS256")
    assert _failure(token_service, token) is AuthFailure.MALFORMED


def test_auth_error_message_hides_reason(token_service: TokenService) -> None:
    with pytest.raises(AuthError) as exc_info:
        token_service.verify("a.b")
    assert exc_info.value.message == "invalid token"
    assert exc_info.value.status_code == 401
