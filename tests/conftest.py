"""
tests/conftest.py -- Shared test fixtures for StaffDesk.

This module provides:
  - auth_config / hasher / tokens / store: unit-level components with a fixed
    test secret, bcrypt's minimum cost, and an in-memory SQLite store
  - accounts / gate: services wired from the components above
  - api_client: TestClient over the real app with a patched lifespan, plus a
    small org chart (CEO, HR, Senior, two Juniors) and a token for each

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread.

DEBUG must be set before any core import so get_settings() can auto-generate
SECRET_KEY instead of raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: Set DEBUG before any core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app, install_auth
from auth.accounts import AccountService
from auth.gate import AuthenticationGate
from auth.models import AuthConfig, Identity, Role
from auth.passwords import PasswordHasher
from auth.store import IdentityStore
from auth.tokens import TokenService

TEST_SECRET = "test-secret-key-0123456789abcdef0123456789"
TEST_PASSWORD = "correct-horse-42"


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def auth_config() -> AuthConfig:
    return AuthConfig(secret_key=TEST_SECRET, token_expire_seconds=3600, bcrypt_rounds=4)


@pytest.fixture
def hasher(auth_config: AuthConfig) -> PasswordHasher:
    return PasswordHasher(auth_config)


@pytest.fixture
def tokens(auth_config: AuthConfig) -> TokenService:
    return TokenService(auth_config)


@pytest.fixture
def store() -> Generator[IdentityStore, None, None]:
    s = IdentityStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def accounts(store: IdentityStore, hasher: PasswordHasher, tokens: TokenService) -> AccountService:
    return AccountService(store, hasher, tokens)


@pytest.fixture
def gate(store: IdentityStore, tokens: TokenService) -> AuthenticationGate:
    return AuthenticationGate(store, tokens)


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


@dataclass
class OrgChart:
    """Identities and bearer tokens seeded into the API test store."""

    client: TestClient
    ceo: Identity
    hr: Identity
    senior: Identity
    junior: Identity
    other_junior: Identity
    tokens: dict[str, str]

    def headers(self, who: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.tokens[who]}"}

    def create_user(self, email: str, role: str = "Junior", **fields) -> dict:
        """Create an identity through the API as the CEO and return the response body."""
        body = {"email": email, "password": TEST_PASSWORD, "role": role, "name": email.split("@")[0]}
        if role == "Junior":
            body["manager_id"] = self.senior.id
        body.update(fields)
        resp = self.client.post("/api/v1/users", json=body, headers=self.headers("ceo"))
        assert resp.status_code == 201, resp.text
        return resp.json()


def _patch_lifespan(store: IdentityStore, config: AuthConfig):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-seeded test store into app.state so routes see the isolated
    test DB rather than the production database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        install_auth(app, store, config)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[OrgChart, None, None]:
    """Yield an OrgChart for API integration tests.

    One store per test module (the module name is part of the DB URI) so
    modules cannot see each other's writes.
    """
    config = AuthConfig(secret_key=TEST_SECRET, token_expire_seconds=3600, bcrypt_rounds=4)
    db_name = request.module.__name__.replace(".", "_")
    store = IdentityStore(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    service = AccountService(store, PasswordHasher(config), TokenService(config))

    ceo = service.register("ceo@staffdesk.test", TEST_PASSWORD, Role.CEO, name="Chief")
    hr = service.register("hr@staffdesk.test", TEST_PASSWORD, Role.HR, name="People")
    senior = service.register("senior@staffdesk.test", TEST_PASSWORD, Role.SENIOR, name="Lead")
    junior = service.register(
        "junior@staffdesk.test", TEST_PASSWORD, Role.JUNIOR, manager_id=senior.id, name="Dev One"
    )
    other_junior = service.register(
        "junior2@staffdesk.test", TEST_PASSWORD, Role.JUNIOR, manager_id=senior.id, name="Dev Two"
    )
    tokens = {
        name: service.tokens.issue(identity.id)
        for name, identity in {
            "ceo": ceo,
            "hr": hr,
            "senior": senior,
            "junior": junior,
            "other_junior": other_junior,
        }.items()
    }

    app.router.lifespan_context = _patch_lifespan(store, config)
    limiter.reset()

    with TestClient(app, raise_server_exceptions=True) as client:
        yield OrgChart(
            client=client,
            ceo=ceo,
            hr=hr,
            senior=senior,
            junior=junior,
            other_junior=other_junior,
            tokens=tokens,
        )

    store.close()
