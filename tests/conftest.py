"""
tests/conftest.py -- Shared test fixtures for postboard unit and integration tests.

This module provides:
  - hasher / token_service / FakeClock: fast, deterministic auth primitives
  - user_store / post_store: throwaway in-memory stores for unit tests
  - _make_test_stores(): isolated shared-memory DBs for the TestClient
  - _patch_lifespan(): wires test stores and services into app.state
  - api_client: TestClient plus a signed-in user for API integration tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the TestClient because route handlers run in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

The DEBUG env var must be set before any api/ import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any api/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import User
from auth.passwords import PasswordHasher
from auth.service import AccountService
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import get_settings
from posts.service import PostService
from posts.store import PostStore

TEST_SECRET = "test-secret-key-that-is-at-least-32-characters"
TEST_PASSWORD = "testpass123"


class FakeClock:
    """Settable stand-in for time.time()."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    """bcrypt at the minimum cost factor -- correctness, not strength, is under test."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def secret_key() -> str:
    return TEST_SECRET


@pytest.fixture
def token_service(secret_key: str, clock: FakeClock) -> TokenService:
    return TokenService(secret_key, default_ttl=3600, clock=clock)


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def post_store() -> Generator[PostStore, None, None]:
    store = PostStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def accounts(user_store: UserStore, hasher: PasswordHasher, token_service: TokenService) -> AccountService:
    return AccountService(user_store, hasher, token_service, get_settings())


@pytest.fixture
def post_service(post_store: PostStore, user_store: UserStore) -> PostService:
    return PostService(post_store, user_store)


# ---------------------------------------------------------------------------
# Integration helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, PostStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    users_url = f"sqlite:///file:test_users_{db_suffix}?mode=memory&cache=shared&uri=true"
    posts_url = f"sqlite:///file:test_posts_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(users_url), PostStore(posts_url)


def _patch_lifespan(users: UserStore, post_store: PostStore, hasher: PasswordHasher, tokens: TokenService):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores and services into app.state so TestClient
    routes see isolated test DBs and the fixed test signing key.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.users = users
        app.state.post_store = post_store
        app.state.hasher = hasher
        app.state.tokens = tokens
        app.state.accounts = AccountService(users, hasher, tokens, get_settings())
        app.state.posts = PostService(post_store, users)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request: pytest.FixtureRequest) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers but use isolated in-memory stores. One user is
    created up front and a token issued for it, for use in x-auth-token.
    """
    users, post_store = _make_test_stores(request.module.__name__.rsplit(".", 1)[-1])
    hasher = PasswordHasher(rounds=4)
    tokens = TokenService(TEST_SECRET, default_ttl=3600)

    uid = users.create_user(
        User(
            name="Test User",
            email="testuser@x.com",
            hashed_password=hasher.hash(TEST_PASSWORD),
        )
    )
    token = tokens.issue(uid)

    app.router.lifespan_context = _patch_lifespan(users, post_store, hasher, tokens)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, uid

    users.close()
    post_store.close()
