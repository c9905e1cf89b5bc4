"""
Database Session Setup
======================
Async engine and session factory construction for the document store.
"""

from pathlib import Path
from typing import Tuple

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .models import Base


def _ensure_sqlite_directory(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    url = make_url(database_url)
    if not url.get_backend_name().startswith("sqlite"):
        return
    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def create_session_factory(
    database_url: str,
) -> Tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """
    Build the engine and session factory shared by all requests.

    Args:
        database_url: SQLAlchemy async database URL.

    Returns:
        Tuple of (engine, session_factory). The caller owns the engine
        and must dispose it on shutdown.
    """
    _ensure_sqlite_directory(database_url)
    engine = create_async_engine(database_url, echo=False)
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return engine, session_factory


async def init_database(engine: AsyncEngine) -> None:
    """Create the documents and extracted_fields tables if missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
