"""Pytest configuration and shared fixtures."""

import os
import tempfile

import pytest

from prsync.database import Database
from tests.fixtures.fake_remote import FakeRemoteClient


@pytest.fixture(scope="function")
def temp_db_path():
    """Create a temporary database file for testing."""
    with tempfile.NamedTemporaryFile(delete=False, suffix=".db") as tmp:
        db_path = tmp.name
    yield db_path
    for suffix in ("", "-wal", "-shm"):
        if os.path.exists(db_path + suffix):
            os.remove(db_path + suffix)


@pytest.fixture(scope="function")
def test_db_schema(temp_db_path):
    """Create test database schema using the Alembic migrations."""
    Database(db_path=temp_db_path, encryption_key=None).migrate()
    yield temp_db_path


@pytest.fixture(scope="function")
def test_db(test_db_schema):
    """Create a Database instance for testing."""
    return Database(db_path=test_db_schema, encryption_key=None)


@pytest.fixture
def remote():
    """In-memory remote service with one existing portfolio (id 7)."""
    return FakeRemoteClient(portfolio_ids=[7])
