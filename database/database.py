"""
Database connection and session management
Async engine for the template store (asyncpg in production, aiosqlite in tests)
"""

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

# Base class for declarative models
Base = declarative_base()


def create_engine(database_url: str) -> AsyncEngine:
    """Create the async engine for a database URL."""
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url)
    return create_async_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Session factory bound to an engine; sessions keep objects after commit."""
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


async def init_models(engine: AsyncEngine) -> None:
    """Create tables that do not exist yet."""
    # models must be imported so they register on Base.metadata
    from database import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
