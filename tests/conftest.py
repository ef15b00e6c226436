"""
tests/conftest.py -- Shared test fixtures for AuthGate tests.

This module provides:
  - make_store(): isolated named shared-memory SQLite store
  - hasher / issuer / store / service: unit-level building blocks
  - _patch_lifespan(): wires test objects into app.state, bypassing real startup
  - api_client: TestClient against the real app with an isolated store

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares one
in-memory instance across all connections in the same process.

The DEBUG env var must be set before any api/core import so get_settings()
auto-generates the signing secrets instead of raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any core/api import so get_settings() can
# auto-generate the signing secrets in dev mode instead of raising.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.passwords import PasswordHasher
from auth.service import SessionService
from auth.store import UserStore
from auth.tokens import TokenIssuer

# bcrypt's minimum cost keeps the suite fast; verify() reads the cost from
# each digest, so nothing else depends on this value.
TEST_ROUNDS = 4

ACCESS_SECRET = "a" * 32 + "-access-test-secret"
REFRESH_SECRET = "r" * 32 + "-refresh-test-secret"


def make_store(name: str | None = None) -> UserStore:
    """Create an isolated named shared-memory SQLite store."""
    name = name or uuid.uuid4().hex
    return UserStore(db_url=f"sqlite:///file:test_auth_{name}?mode=memory&cache=shared&uri=true")


def make_issuer(access_ttl: int = 3600, refresh_ttl: int = 7 * 86400) -> TokenIssuer:
    return TokenIssuer(ACCESS_SECRET, REFRESH_SECRET, access_ttl=access_ttl, refresh_ttl=refresh_ttl)


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=TEST_ROUNDS)


@pytest.fixture
def issuer() -> TokenIssuer:
    return make_issuer()


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = make_store()
    yield s
    s.close()


@pytest.fixture
def service(store: UserStore, hasher: PasswordHasher, issuer: TokenIssuer) -> SessionService:
    return SessionService(store, hasher, issuer)


# ---------------------------------------------------------------------------
# App fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(store: UserStore, service: SessionService):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test objects into app.state so TestClient routes see an
    isolated test DB rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = store
        app.state.token_issuer = service.issuer
        app.state.session_service = service
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, SessionService], None, None]:
    """Yield (client, service) for API integration tests.

    One TestClient per test module for speed. Tests that need a fresh user
    should register a unique username rather than rely on an empty store.
    """
    store = make_store()
    service = SessionService(store, PasswordHasher(rounds=TEST_ROUNDS), make_issuer())

    app.router.lifespan_context = _patch_lifespan(store, service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, service

    store.close()
