"""
tests/conftest.py -- Shared test fixtures for the session auth test suite.

This module provides:
  - make_engine(): isolated named shared-memory SQLite engine
  - engine / store / issuer / registry / guard: unit-level fixtures
  - _patch_lifespan(): wires a test engine into app.state, bypassing real startup
  - api_client: TestClient running the real app against an isolated DB
  - reset_rate_limits (autouse): empties the in-memory limiter between tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient and asyncio.to_thread run code in worker threads. Plain
:memory: DBs are per-connection and would present a blank schema to each
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

DEBUG and BCRYPT_ROUNDS must be set before any api/auth/core import so
get_settings() auto-generates SECRET_KEY and hashing runs at minimum cost.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any auth/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from api.limiter import limiter
from api.main import app, init_auth_state
from auth.db import create_db_engine
from auth.guard import AuthGuard
from auth.sessions import SessionRegistry
from auth.store import CredentialStore
from auth.tokens import TokenIssuer
from core.config import get_settings

TEST_SECRET = "test-secret-key-that-is-long-enough-0123456789"
TEST_ROUNDS = 4

# ---------------------------------------------------------------------------
# Engine helpers
# ---------------------------------------------------------------------------


def make_engine(name: str) -> Engine:
    """Create an isolated named shared-memory SQLite engine with tables.

    A random suffix keeps DBs from different tests apart even when they use
    the same name.
    """
    url = f"sqlite:///file:test_{name}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    return create_db_engine(url)


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    eng = make_engine("unit")
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine: Engine) -> CredentialStore:
    return CredentialStore(engine, bcrypt_rounds=TEST_ROUNDS)


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(TEST_SECRET)


@pytest.fixture
def registry(engine: Engine) -> SessionRegistry:
    return SessionRegistry(engine, TEST_SECRET)


@pytest.fixture
def guard(issuer: TokenIssuer, registry: SessionRegistry) -> AuthGuard:
    return AuthGuard(issuer, registry)


@pytest.fixture(autouse=True)
def reset_rate_limits() -> Generator[None, None, None]:
    """Every test starts with an empty auth attempt window."""
    limiter.reset()
    yield
    limiter.reset()


# ---------------------------------------------------------------------------
# App fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(engine: Engine):
    """Return an async context manager that replaces the real lifespan.

    Wires the auth components onto app.state against the test engine. The
    session reaper is not started; tests drive sweeps directly.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        init_auth_state(app, get_settings(), engine)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[TestClient, None, None]:
    """Yield a TestClient for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers, the real guard and the real limiter, but use an
    isolated in-memory DB shared by every test in the module.
    """
    eng = make_engine("api")
    app.router.lifespan_context = _patch_lifespan(eng)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    eng.dispose()
