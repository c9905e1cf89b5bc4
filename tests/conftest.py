"""
Zen AI Fax - Test Configuration
===============================
Pytest fixtures and markers shared by unit and integration tests.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

# Add backend to path for imports
BACKEND_PATH = Path(__file__).parent.parent / "apps" / "backend"
sys.path.insert(0, str(BACKEND_PATH))


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Fast, no I/O beyond temp files, mocks only"
    )
    config.addinivalue_line(
        "markers", "integration: Full HTTP stack against a temporary SQLite database"
    )


# =============================================================================
# Settings & Database
# =============================================================================

@pytest.fixture
def test_settings(tmp_path: Path):
    """
    Settings with every cloud integration disabled and all state under
    the test's temporary directory.
    """
    from config import Settings

    return Settings(
        _env_file=None,
        azure_storage_connection_string=None,
        form_recognizer_endpoint=None,
        form_recognizer_key=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'data' / 'test.db'}",
        upload_dir=str(tmp_path / "uploads"),
        environment="development",
    )


@pytest_asyncio.fixture
async def session_factory(test_settings):
    """Session factory over a fresh SQLite file with the schema created."""
    from database import create_session_factory, init_database

    engine, factory = create_session_factory(test_settings.database_url)
    await init_database(engine)

    yield factory

    await engine.dispose()


@pytest.fixture
def failing_session_factory():
    """
    Session factory whose sessions fail every query, simulating an
    unreachable database.
    """
    from sqlalchemy.exc import OperationalError

    def _factory():
        session = MagicMock()
        session.execute = AsyncMock(
            side_effect=OperationalError("SELECT 1", {}, Exception("database is down"))
        )
        session.flush = AsyncMock(
            side_effect=OperationalError("INSERT", {}, Exception("database is down"))
        )
        session.commit = AsyncMock()
        session.rollback = AsyncMock()
        session.close = AsyncMock()
        return session

    return _factory


# =============================================================================
# HTTP Client
# =============================================================================

@pytest.fixture
def make_client(test_settings):
    """
    Build a TestClient around a freshly created app.

    Keyword arguments are forwarded to ``create_app`` so tests can inject
    storage or analyzer strategies.
    """
    from fastapi.testclient import TestClient
    from main import create_app

    clients = []

    def _make(**overrides):
        overrides.setdefault("settings", test_settings)
        client = TestClient(create_app(**overrides))
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    """TestClient with local storage and the mock analyzer."""
    return make_client()


@pytest.fixture
def upload_file():
    """Build the ``files`` argument for a multipart upload."""
    def _build(filename: str = "invoice_123.pdf", content: bytes = b"%PDF-1.4 test fax"):
        return {"file": (filename, content, "application/pdf")}

    return _build
