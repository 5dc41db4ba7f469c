"""
Shared fixtures.

Every test gets its own database file under pytest's tmp_path.
"""

import sqlite3

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from riham.config import settings
from riham.db import SQLiteDatabase, MIGRATIONS, reconcile


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "grad.db")


@pytest.fixture
def db_target(db_path):
    """Database identifier for the per-test file."""
    return f"sqlite:{db_path}"


@pytest.fixture
def sql(db_path):
    """Run a query against the test file with a plain sqlite3 connection."""
    def run(query, params=()):
        conn = sqlite3.connect(db_path)
        try:
            rows = conn.execute(query, params).fetchall()
            conn.commit()
            return rows
        finally:
            conn.close()
    return run


@pytest.fixture
def table_names(sql):
    def names():
        rows = sql("SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%'")
        return {row[0] for row in rows}
    return names


@pytest_asyncio.fixture
async def database(db_target, db_path):
    """A reconciled database with the repository on top."""
    await reconcile(db_target, MIGRATIONS)
    db = SQLiteDatabase(db_path)
    yield db
    await db.close()


@pytest.fixture
def app_settings(tmp_path, monkeypatch):
    """Point the application at a fresh data directory."""
    monkeypatch.setattr(settings, "data_dir", str(tmp_path / "data"))
    monkeypatch.setattr(settings, "database_url", "sqlite:grad.db")
    monkeypatch.setattr(settings, "session_secret", "test-secret")
    return settings


@pytest.fixture
def client(app_settings):
    """Unauthenticated client with the full startup lifespan."""
    from riham.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_client(client):
    """Client logged in as the seeded admin account."""
    response = client.post("/login", data={"username": "admin", "password": "admin"})
    assert response.status_code == 200
    return client
