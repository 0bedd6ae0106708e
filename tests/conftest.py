"""
tests/conftest.py -- Shared test fixtures.

This module provides:
  - hasher / issuer: fast PasswordHasher (bcrypt rounds=4) and a TokenIssuer
  - user_store / org_store: fresh in-memory SQLite stores per test
  - make_user(): insert a user with a real bcrypt hash
  - api_env: TestClient over the real app with isolated stores, plus a
    seeded admin, member, and outsider with bearer tokens

Design: API tests use named shared-memory SQLite URIs (not plain :memory:)
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI shares one in-memory instance across all connections.

DEBUG must be set before any app import so get_settings() auto-generates
SECRET_KEY instead of raising ValueError. BCRYPT_ROUNDS=4 keeps bcrypt fast.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: set before any auth/core/api import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app, wire_services
from auth.models import AuthClaims, Role, User
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenIssuer
from core.config import get_settings
from orgs.store import OrganizationStore

TEST_SECRET = "test-secret-key-that-is-at-least-32-chars"
DEFAULT_PASSWORD = "correct-horse-battery"


# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(TEST_SECRET, expire_seconds=3600)


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def org_store() -> Generator[OrganizationStore, None, None]:
    store = OrganizationStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def make_user(user_store: UserStore, hasher: PasswordHasher):
    """Factory: insert a user and return the stored record."""

    def _make(
        email: str = "ada@example.com",
        password: str = DEFAULT_PASSWORD,
        role: Role = Role.USER,
        is_active: bool = True,
        organization_id: int | None = None,
    ) -> User:
        uid = user_store.create_user(
            User(
                email=email,
                first_name="Ada",
                last_name="Lovelace",
                role=role,
                hashed_password=hasher.hash(password),
                is_active=is_active,
                organization_id=organization_id,
            )
        )
        return user_store.get_by_id(uid)

    return _make


# ---------------------------------------------------------------------------
# API integration fixture
# ---------------------------------------------------------------------------


@dataclass
class ApiEnv:
    client: TestClient
    user_store: UserStore
    org_store: OrganizationStore
    issuer: TokenIssuer
    admin: User
    member: User
    outsider: User

    def headers_for(self, user: User) -> dict[str, str]:
        token = self.issuer.issue(AuthClaims(subject=user.id, email=user.email, role=user.role))
        return {"Authorization": f"Bearer {token}"}


def _patch_lifespan(user_store: UserStore, org_store: OrganizationStore):
    """Return a lifespan that wires pre-created test stores into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(app, get_settings(), user_store, org_store)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_env(request) -> Generator[ApiEnv, None, None]:
    """Yield an ApiEnv for API integration tests, one per test module.

    Seeds three users (password DEFAULT_PASSWORD):
      admin@example.com    role=admin, no organization
      member@example.com   role=user
      outsider@example.com role=user
    Tokens are signed with the same Settings.secret_key the app verifies with.
    """
    suffix = request.module.__name__.replace(".", "_")
    db_url = f"sqlite:///file:test_{suffix}?mode=memory&cache=shared&uri=true"
    user_store = UserStore(db_url)
    org_store = OrganizationStore(db_url)

    settings = get_settings()
    seed_hasher = PasswordHasher(rounds=settings.bcrypt_rounds)

    def seed(email: str, role: Role) -> User:
        uid = user_store.create_user(
            User(
                email=email,
                first_name=email.split("@")[0].title(),
                last_name="Test",
                role=role,
                hashed_password=seed_hasher.hash(DEFAULT_PASSWORD),
            )
        )
        return user_store.get_by_id(uid)

    admin = seed("admin@example.com", Role.ADMIN)
    member = seed("member@example.com", Role.USER)
    outsider = seed("outsider@example.com", Role.USER)

    app.router.lifespan_context = _patch_lifespan(user_store, org_store)
    # Login tests would otherwise trip the 10/minute limit shared by the session.
    limiter.enabled = False

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiEnv(
            client=client,
            user_store=user_store,
            org_store=org_store,
            issuer=TokenIssuer(settings.secret_key, settings.token_expire_seconds),
            admin=admin,
            member=member,
            outsider=outsider,
        )

    limiter.enabled = True
    user_store.close()
    org_store.close()
