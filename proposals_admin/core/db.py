"""
Database connection and session management.

Provides the async SQLAlchemy engine and session factory used by the
FastAPI endpoints and the command objects.
"""

import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from proposals_admin.core.config import settings

logger = logging.getLogger(__name__)

_async_engine: AsyncEngine | None = None
_async_sessionmaker: async_sessionmaker | None = None


def _engine_kwargs(url: str) -> dict[str, object]:
    """Pool and driver options for the configured backend."""
    if url.startswith("sqlite"):
        return {"echo": False}

    return {
        "pool_size": 20,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
        "echo": False,
        "connect_args": {
            "server_settings": {"timezone": "UTC"},
            "timeout": 30,
        },
    }


def get_async_engine() -> AsyncEngine:
    """
    Create and configure the async SQLAlchemy engine.

    Uses asyncpg for PostgreSQL and aiosqlite for local SQLite files.

    Returns:
        Configured async SQLAlchemy engine
    """
    global _async_engine

    if _async_engine is not None:
        return _async_engine

    url = settings.database_url
    if not url:
        raise RuntimeError("DATABASE_URL is required")

    _async_engine = create_async_engine(url, **_engine_kwargs(url))
    logger.info("Async database engine created", extra={"dialect": _async_engine.dialect.name})

    return _async_engine


def get_async_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """
    Get or create the async sessionmaker.

    Returns:
        Async sessionmaker factory
    """
    global _async_sessionmaker
    if _async_sessionmaker is not None:
        return _async_sessionmaker

    engine = get_async_engine()
    _async_sessionmaker = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    return _async_sessionmaker


async def reset_async_engine() -> None:
    """Reset the async database engine and sessionmaker.

    Useful for tests to ensure fresh connections on new event loops.
    """
    global _async_engine, _async_sessionmaker

    if _async_engine is not None:
        await _async_engine.dispose()
    _async_engine = None
    _async_sessionmaker = None
