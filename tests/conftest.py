"""
tests/conftest.py -- Shared test fixtures for Pressroom unit and integration tests.

This module provides:
  - FakeClock / clock: a settable clock for the token service and article dates
  - hasher: PasswordHasher at the minimum bcrypt work factor (fast tests)
  - token_service: TokenService with a fixed key driven by the fake clock
  - credential_store / article_store: plain in-memory SQLite stores
  - _make_test_services() / _patch_lifespan(): wire isolated stores into app.state
  - api_client: TestClient with a seeded user and a valid token
  - policy_client: TestClient whose route policy carries deployment overrides

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
API client because TestClient runs handlers in a worker thread. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

The DEBUG env var must be set before any api/ import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# CRITICAL: Set DEBUG before any api/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from api.operations import Services, default_policy
from articles.store import ArticleStore
from auth.gate import AuthorizationGate, build_policy
from auth.models import Credential
from auth.passwords import PasswordHasher
from auth.store import CredentialStore
from auth.tokens import TokenConfig, TokenService

TEST_SECRET_KEY = "test-secret-key-0123456789abcdef0123456789abcdef"


class FakeClock:
    """Callable clock whose current time only moves when a test says so."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def secret_key() -> str:
    return TEST_SECRET_KEY


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 7, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    """bcrypt at 4 rounds: same algorithm, a fraction of the cost."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def token_service(clock: FakeClock) -> TokenService:
    return TokenService(TokenConfig(secret_key=TEST_SECRET_KEY, ttl=timedelta(hours=24)), clock=clock)


@pytest.fixture
def credential_store() -> Generator[CredentialStore, None, None]:
    store = CredentialStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def article_store() -> Generator[ArticleStore, None, None]:
    store = ArticleStore("sqlite:///:memory:")
    yield store
    store.close()


# ---------------------------------------------------------------------------
# App wiring helpers
# ---------------------------------------------------------------------------


def _make_test_services(db_suffix: str, hasher: PasswordHasher) -> Services:
    """Create isolated named shared-memory stores and the collaborators around them.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (e.g. 'api', 'policy').
    """
    db_url = f"sqlite:///file:test_pressroom_{db_suffix}?mode=memory&cache=shared&uri=true"
    return Services(
        credentials=CredentialStore(db_url),
        articles=ArticleStore(db_url),
        hasher=hasher,
        tokens=TokenService(TokenConfig(secret_key=TEST_SECRET_KEY)),
    )


def _patch_lifespan(services: Services, gate: AuthorizationGate, request_timeout: float = 5.0):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-built test services into app.state so TestClient routes see
    isolated test DBs rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.services = services
        app.state.gate = gate
        app.state.request_timeout = request_timeout
        yield

    return test_lifespan


def _close(services: Services) -> None:
    services.credentials.close()
    services.articles.close()


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(hasher: PasswordHasher) -> Generator[tuple[TestClient, str, Services], None, None]:
    """Yield (client, token, services) for API integration tests.

    A user "editor" / editor@example.com / editorpass is created before the
    client starts, and token is a valid JWT for that user.
    """
    services = _make_test_services("api", hasher)
    services.credentials.insert(
        Credential(
            username="editor",
            email="editor@example.com",
            password_hash=hasher.hash("editorpass"),
        )
    )
    token = services.tokens.issue("editor")
    gate = AuthorizationGate(build_policy(default_policy()), services.tokens)

    app.router.lifespan_context = _patch_lifespan(services, gate)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, services

    _close(services)


@pytest.fixture(scope="module")
def policy_client(hasher: PasswordHasher) -> Generator[tuple[TestClient, str, str], None, None]:
    """Yield (client, token, user_id) for a deployment with route overrides.

    getUserById is made protected and getUsers public, the way
    ROUTE_VISIBILITY would configure them. user_id belongs to the seeded
    user "reader" and token is a valid JWT for that user.
    """
    services = _make_test_services("policy", hasher)
    user_id = services.credentials.insert(
        Credential(
            username="reader",
            email="reader@example.com",
            password_hash=hasher.hash("readerpass"),
        )
    )
    token = services.tokens.issue("reader")
    policy = build_policy(default_policy(), {"getUserById": "protected", "getUsers": "public"})
    gate = AuthorizationGate(policy, services.tokens)

    app.router.lifespan_context = _patch_lifespan(services, gate)

    with TestClient(app) as client:
        yield client, token, user_id

    _close(services)
