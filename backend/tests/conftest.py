from __future__ import annotations

import os

# Set test environment BEFORE importing blindseal modules so get_settings()
# never falls back to random development secrets.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ENCRYPTION_MASTER_SECRET", "test-master-secret-for-unit-tests-only")
os.environ.setdefault("ENCRYPTION_KEY_SALT", "test-key-salt")
os.environ.setdefault("ENCRYPTION_SEARCH_SALT", "test-search-salt")
os.environ.setdefault("DB_URL", "sqlite://")

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from blindseal import models  # noqa: F401
from blindseal.key_cache import KeyCache
from blindseal.services.encryption import EncryptionService
from blindseal.services.search import SearchService

MASTER_SECRET = "test-master-secret-for-unit-tests-only"
KEY_SALT = "test-key-salt"
SEARCH_SALT = "test-search-salt"


# ── Encryption fixtures ───────────────────────────────────────────────


@pytest.fixture(scope="session")
def shared_key_cache() -> KeyCache:
    """One cache for the whole run: PBKDF2 at 100k iterations is slow."""
    return KeyCache()


@pytest.fixture(name="encryption_service")
def encryption_service_fixture(shared_key_cache: KeyCache) -> EncryptionService:
    return EncryptionService(MASTER_SECRET, KEY_SALT, SEARCH_SALT, key_cache=shared_key_cache)


@pytest.fixture(name="search_service")
def search_service_fixture(encryption_service: EncryptionService) -> SearchService:
    return SearchService(encryption_service)


# ── Database fixtures ─────────────────────────────────────────────────


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite engine for testing.

    Uses StaticPool so every connection shares the same in-memory database.
    Recreates tables per test for full isolation.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    """Provide a fresh session per test."""
    with Session(engine) as session:
        yield session
