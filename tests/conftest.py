"""Shared test fixtures: an app wired to in-memory stores."""

import asyncio
import uuid

import bcrypt
import pytest
from fastapi.testclient import TestClient

from viewmaxx.auth.store import MemoryTokenStore
from viewmaxx.config.settings import Settings
from viewmaxx.main import create_app
from viewmaxx.services import build_services
from viewmaxx.users.repository import MemoryUserRepository

TEST_PASSWORD = "SecureTestPass123"


@pytest.fixture
def settings():
    return Settings(
        ENVIRONMENT="test",
        JWT_SECRET="test-access-secret-do-not-use-in-production",
        JWT_REFRESH_SECRET="test-refresh-secret-do-not-use-in-production",
        STORAGE_BACKEND="memory",
        TOKEN_STORE_BACKEND="memory",
        RATE_LIMIT_MAX_REQUESTS=10_000,
    )


@pytest.fixture
def users():
    return MemoryUserRepository()


@pytest.fixture
def token_store():
    return MemoryTokenStore()


@pytest.fixture
def services(settings, users, token_store):
    return build_services(settings, users=users, token_store=token_store)


@pytest.fixture
def app(settings, users, token_store):
    return create_app(settings, users=users, token_store=token_store)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def make_user(users):
    """Create a user directly in the credential store."""

    def _make(**fields):
        suffix = uuid.uuid4().hex[:8]
        row = {
            "email": f"user_{suffix}@example.com",
            "username": f"user_{suffix}",
            "display_name": f"User {suffix}",
            "password_hash": bcrypt.hashpw(TEST_PASSWORD.encode(), bcrypt.gensalt(4)).decode(),
            **fields,
        }
        return asyncio.run(users.create(row))

    return _make


@pytest.fixture
def login(client):
    """Log a user in over HTTP and return the response data."""

    def _login(user):
        resp = client.post("/api/auth/login", json={"email": user.email, "password": TEST_PASSWORD})
        assert resp.status_code == 200, resp.text
        return resp.json()["data"]

    return _login
