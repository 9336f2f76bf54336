"""
Database connection and session management.

Provides sync engines for schema management and async engines, session
factories and transactional scopes for the local store.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from .models import Base

DEFAULT_DATABASE_URL = "sqlite:///data/supplylink.db"


# =============================================================================
# SQLite Configuration
# =============================================================================


def _configure_sqlite(engine: Engine, in_memory: bool) -> None:
    """Configure SQLite connections.

    Enables foreign keys everywhere and WAL mode for file databases.
    """
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if not in_memory:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()


def _is_memory_url(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def _get_async_url(url: str) -> str:
    """Convert sync database URL to async variant.

    SQLite: sqlite:// -> sqlite+aiosqlite://. Other URLs must already name
    an async driver.
    """
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def _sqlite_options(url: str) -> dict[str, Any]:
    """Engine options for a SQLite URL, creating the file's directory."""
    in_memory = _is_memory_url(url)
    if not in_memory and url.startswith("sqlite:///"):
        # Ensure data directory exists
        Path(url.replace("sqlite:///", "")).parent.mkdir(parents=True, exist_ok=True)

    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if in_memory:
        # All sessions must share the single in-memory connection
        options["poolclass"] = StaticPool
    return options


# =============================================================================
# Engine Creation
# =============================================================================


def create_db_engine(
    url: str = DEFAULT_DATABASE_URL,
    echo: bool = False,
    pool_size: int = 5,
) -> Engine:
    """Create a new synchronous database engine.

    Args:
        url: SQLAlchemy database URL
        echo: Whether to log SQL statements
        pool_size: Connection pool size (ignored for SQLite)

    Returns:
        SQLAlchemy Engine instance
    """
    if url.startswith("sqlite"):
        engine = create_engine(url, echo=echo, **_sqlite_options(url))
        _configure_sqlite(engine, _is_memory_url(url))
        return engine

    return create_engine(
        url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=10,
        pool_pre_ping=True,
    )


def create_async_db_engine(
    url: str = DEFAULT_DATABASE_URL,
    echo: bool = False,
    pool_size: int = 5,
) -> AsyncEngine:
    """Create a new asynchronous database engine.

    Args:
        url: SQLAlchemy database URL (will be converted to async variant)
        echo: Whether to log SQL statements
        pool_size: Connection pool size (ignored for SQLite)

    Returns:
        SQLAlchemy AsyncEngine instance
    """
    async_url = _get_async_url(url)

    if url.startswith("sqlite"):
        engine = create_async_engine(async_url, echo=echo, **_sqlite_options(url))
        _configure_sqlite(engine.sync_engine, _is_memory_url(url))
        return engine

    return create_async_engine(
        async_url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=10,
        pool_pre_ping=True,
    )


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build an async session factory bound to an engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


# =============================================================================
# Session Management
# =============================================================================


@asynccontextmanager
async def session_scope(factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """Transactional scope around a series of operations.

    Usage:
        async with session_scope(factory) as session:
            await session.execute(...)

    Yields:
        SQLAlchemy AsyncSession instance, committed on success
    """
    session = factory()

    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


# =============================================================================
# Database Initialization
# =============================================================================


def init_db(url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> None:
    """Create all tables if they don't exist.

    Args:
        url: Database URL
        echo: Whether to log SQL
    """
    engine = create_db_engine(url, echo=echo)
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()


async def init_db_async(url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> AsyncEngine:
    """Create all tables if they don't exist, asynchronously.

    Args:
        url: Database URL
        echo: Whether to log SQL

    Returns:
        The async engine the schema was created on
    """
    engine = create_async_db_engine(url, echo=echo)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return engine


def drop_db(url: str = DEFAULT_DATABASE_URL) -> None:
    """Drop all database tables.

    WARNING: This will delete all data!

    Args:
        url: Database URL
    """
    engine = create_db_engine(url)
    try:
        Base.metadata.drop_all(bind=engine)
    finally:
        engine.dispose()
