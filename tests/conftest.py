"""
tests/conftest.py -- Shared test fixtures for the auth service.

This module provides:
  - settings: explicit Settings with a fixed test secret (no .env, no env lookup)
  - token_service: TokenService bound to that secret
  - api_client: TestClient plus a helper that builds Bearer headers

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format shares one in-memory instance per process.

The real lifespan calls get_settings(), which reads the environment. Tests
replace it with one that wires explicit Settings into app.state instead.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app, install_services
from auth.models import TokenPayload
from auth.store import TwoFactorStore
from auth.tokens import TokenService
from core.config import Settings

TEST_SECRET = "test-secret-0123456789abcdef0123456789abcdef"

HeaderFactory = Callable[..., dict[str, str]]


def make_settings(**overrides) -> Settings:
    """Build Settings from keyword arguments only, ignoring any .env file."""
    values = {"jwt_secret": TEST_SECRET, "jwt_expire": "1h"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def token_service(settings: Settings) -> TokenService:
    return TokenService(settings)


def _patch_lifespan(settings: Settings, store: TwoFactorStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        install_services(app, settings, store)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, HeaderFactory], None, None]:
    """Yield (client, auth_headers) for API integration tests.

    auth_headers(user_id, username=None, role="user") returns an
    Authorization header carrying a token signed with the test secret.
    """
    settings = make_settings()
    store = TwoFactorStore("sqlite:///file:test_auth_api?mode=memory&cache=shared&uri=true")
    tokens = TokenService(settings)

    def auth_headers(user_id: str, username: str | None = None, role: str = "user") -> dict[str, str]:
        principal = TokenPayload(user_id=user_id, username=username or f"user-{user_id}", role=role)
        return {"Authorization": f"Bearer {tokens.issue(principal)}"}

    limiter.reset()
    app.router.lifespan_context = _patch_lifespan(settings, store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, auth_headers

    store.close()
