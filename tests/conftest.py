"""
tests/conftest.py -- Shared test fixtures for the auth service.

This module provides:
  - InMemoryCredentialStore / InMemoryTokenStore: dict-backed fakes that
    satisfy the CredentialStore / TokenStore protocols, for service unit tests
  - hasher: a PasswordHasher with the minimum bcrypt cost (4) so the suite
    stays fast; the algorithm is identical to production
  - issuer: a TokenIssuer with a fresh random key per test
  - service: AuthService wired to the fakes above
  - count_sessions: row count of a user's refresh tokens in a SQL token store
  - api_client: TestClient over the real FastAPI app with a patched lifespan
    and isolated SQLite stores

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the API fixture because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to each
worker thread.

The DEBUG env var must be set before any api/core import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import itertools
import os
import secrets
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from dataclasses import replace

# CRITICAL: Set DEBUG before any api/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

from api.main import app
from auth.exceptions import DuplicateEmail
from auth.hashing import PasswordHasher
from auth.models import RefreshToken, User
from auth.service import AuthService
from auth.store import RefreshTokenStore, UserStore
from auth.tokens import TokenConfig, TokenIssuer

# ---------------------------------------------------------------------------
# In-memory store fakes
# ---------------------------------------------------------------------------


class InMemoryCredentialStore:
    """CredentialStore backed by a dict keyed on email."""

    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self._ids = itertools.count(1)

    def create_user(self, user: User) -> int:
        if user.email in self.users:
            raise DuplicateEmail(user.email)
        user_id = next(self._ids)
        self.users[user.email] = replace(user, id=user_id, created_at="now", updated_at="now")
        return user_id

    def get_user_by_email(self, email: str) -> User | None:
        return self.users.get(email)


class InMemoryTokenStore:
    """TokenStore backed by a dict keyed on the refresh token string."""

    def __init__(self) -> None:
        self.tokens: dict[str, RefreshToken] = {}
        self._ids = itertools.count(1)

    def create_token(self, token: RefreshToken) -> int:
        token_id = next(self._ids)
        self.tokens[token.refresh_token] = replace(token, id=token_id)
        return token_id

    def get_token(self, refresh_token: str) -> RefreshToken | None:
        return self.tokens.get(refresh_token)

    def delete_token(self, refresh_token: str) -> int:
        return 1 if self.tokens.pop(refresh_token, None) is not None else 0

    def delete_tokens_by_user_id(self, user_id: int) -> int:
        doomed = [key for key, rec in self.tokens.items() if rec.user_id == user_id]
        for key in doomed:
            del self.tokens[key]
        return len(doomed)

    def for_user(self, user_id: int) -> list[RefreshToken]:
        return [rec for rec in self.tokens.values() if rec.user_id == user_id]


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def issuer() -> TokenIssuer:
    """A TokenIssuer with its own random key -- no two tests share a secret."""
    return TokenIssuer(TokenConfig(secret_key=secrets.token_hex(32)))


@pytest.fixture
def user_store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    return InMemoryTokenStore()


@pytest.fixture
def service(
    user_store: InMemoryCredentialStore,
    token_store: InMemoryTokenStore,
    hasher: PasswordHasher,
    issuer: TokenIssuer,
) -> AuthService:
    return AuthService(users=user_store, tokens=token_store, hasher=hasher, issuer=issuer)


@pytest.fixture(scope="session")
def count_sessions() -> Callable[[RefreshTokenStore, int], int]:
    """Count the refresh-token rows a SQL token store holds for one user."""

    def _count(store: RefreshTokenStore, user_id: int) -> int:
        with store.engine.connect() as conn:
            return conn.execute(
                text("SELECT COUNT(*) FROM tokens WHERE user_id = :user_id"), {"user_id": user_id}
            ).scalar_one()

    return _count


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, RefreshTokenStore]:
    """Create isolated named shared-memory SQLite stores.

    Args:
        db_suffix: Unique string appended to the DB name so test modules don't
                   share state.
    """
    url = f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(url), RefreshTokenStore(url)


def _patch_lifespan(user_store: UserStore, token_store: RefreshTokenStore, issuer: TokenIssuer):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores, a fast hasher and a known issuer into
    app.state so TestClient routes see isolated DBs rather than the
    production database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.token_store = token_store
        app.state.token_issuer = issuer
        app.state.auth_service = AuthService(
            users=user_store,
            tokens=token_store,
            hasher=PasswordHasher(rounds=4),
            issuer=issuer,
        )
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, TokenIssuer, RefreshTokenStore], None, None]:
    """Yield (client, issuer, token_store) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers and real SQL stores, isolated per test module.
    """
    suffix = request.module.__name__.rsplit(".", 1)[-1]
    user_store, token_store = _make_test_stores(suffix)
    issuer = TokenIssuer(TokenConfig(secret_key=secrets.token_hex(32)))

    app.router.lifespan_context = _patch_lifespan(user_store, token_store, issuer)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, issuer, token_store

    user_store.close()
    token_store.close()
