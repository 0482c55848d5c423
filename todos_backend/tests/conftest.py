# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# Sets environment variables before any src import (several modules read their
# configuration at import time), then provides a fresh in-memory SQLite store
# per test plus an HTTP client bound to its own app instance.
# =============================================================================

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-pytest")
os.environ.setdefault("ENVIRONMENT", "development")
# Cheap hashing keeps the suite fast
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST", "1024")
os.environ.setdefault("ARGON2_PARALLELISM", "1")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from src.auth.passwords import PasswordHasher
from src.auth.tokens import TokenIssuer
from src.db.db import create_db_engine, create_session_factory, init_db

TEST_SECRET = "test-secret-key-for-pytest"
TEST_EMAIL = "test@test.com"
TEST_PASSWORD = "password123"


# =============================================================================
# Storage fixtures
# =============================================================================

@pytest.fixture
def engine():
    """A private in-memory database with the schema applied."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    """A session on the test database."""
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def hasher():
    return PasswordHasher(time_cost=1, memory_cost=1024, parallelism=1)


# =============================================================================
# Auth / HTTP fixtures
# =============================================================================

@pytest.fixture
def issuer():
    return TokenIssuer(TEST_SECRET, expires_minutes=5)


@pytest.fixture
def app(issuer):
    from src.api.main import create_app

    return create_app("sqlite://", token_issuer=issuer)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def signup(client):
    """Register a user through the API and return the response."""

    def _signup(email=TEST_EMAIL, password=TEST_PASSWORD):
        return client.post("/auth/signup", json={"email": email, "password": password})

    return _signup
