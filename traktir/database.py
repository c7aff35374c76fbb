"""
Database Connection Module
Handles the SQLAlchemy async engine, request sessions and worker sessions.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from traktir.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def _engine_options(url: str) -> dict:
    """Pool sizing only applies to server databases."""
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": 5,  # Connection pool size
        "max_overflow": 10,  # Extra connections when pool is full
        "pool_pre_ping": True,
    }


# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **_engine_options(settings.database_url),
)

# Session factory - creates new database sessions
async_session_maker = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False  # Objects remain accessible after commit
)


# Base class for all our models
class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    Dependency injection for FastAPI routes.
    Yields a database session and ensures cleanup.
    """
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def worker_session() -> AsyncIterator[AsyncSession]:
    """
    Session for Celery tasks.

    Each task runs in its own event loop (``asyncio.run``), so the engine is
    created per task without pooling and disposed before the loop closes.
    """
    worker_engine = create_async_engine(settings.database_url, poolclass=NullPool)
    session_maker = async_sessionmaker(
        bind=worker_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    try:
        async with session_maker() as session:
            yield session
    finally:
        await worker_engine.dispose()


async def init_db():
    """
    Create all tables in database.
    Called once at application startup.
    """
    # Register models on Base.metadata
    from traktir import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created successfully")
