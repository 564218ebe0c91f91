"""
Database initialization and connection management.

This module provides functions for:
1. Initializing the async engine and session factory
2. Creating the schema for development and tests
3. Disposing of the engine on shutdown
"""

from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from thinkpro.common.logger import app_logger
from thinkpro.database.base import Base

logger = app_logger.getChild("database.init_db")

# Global engine instance
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine() -> AsyncEngine:
    """Get the global async engine instance."""
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call initialize_database() first.")
    return _engine


def get_session_factory() -> sessionmaker:
    """Get the session factory bound to the global engine."""
    if _session_factory is None:
        raise RuntimeError("Database engine not initialized. Call initialize_database() first.")
    return _session_factory


def get_engine_kwargs(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout: int = 30,
) -> Dict[str, Any]:
    """
    Get engine keyword arguments based on database type.

    Only PostgreSQL gets pool settings; SQLite uses the dialect defaults.
    """
    kwargs: Dict[str, Any] = {"echo": echo, "future": True}

    if database_url.startswith("postgresql"):
        kwargs.update({
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_timeout": pool_timeout,
            "pool_pre_ping": True,
            "pool_recycle": 300,
        })

    return kwargs


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def initialize_database(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    create_tables: bool = False,
) -> AsyncEngine:
    """
    Initialize the async database engine.

    Args:
        database_url: Database connection URL
        echo: Whether to echo SQL statements
        pool_size: Connection pool size
        max_overflow: Maximum number of connections to allow above pool_size
        pool_timeout: Timeout for getting a connection from the pool
        create_tables: Whether to create missing tables after connecting

    Returns:
        AsyncEngine instance
    """
    global _engine, _session_factory

    try:
        logger.info(f"Initializing database with URL: {database_url[:10]}...")

        _engine = create_async_engine(
            database_url,
            **get_engine_kwargs(database_url, echo, pool_size, max_overflow, pool_timeout)
        )
        _session_factory = create_session_factory(_engine)

        # Test connection
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

        if create_tables:
            await create_all_tables(_engine)

        logger.info("Database engine initialized successfully")
        return _engine

    except Exception as e:
        logger.error(f"Failed to initialize async database: {str(e)}")
        raise


async def create_all_tables(engine: Optional[AsyncEngine] = None) -> None:
    """Create every table registered on the shared metadata."""
    # Register ORM models on the metadata
    import thinkpro.domain.questions.database_models  # noqa: F401
    import thinkpro.assessments.database_models  # noqa: F401

    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


async def close_database() -> None:
    """Close the database engine and all connections."""
    global _engine, _session_factory

    if _engine:
        try:
            await _engine.dispose()
            _engine = None
            _session_factory = None
            logger.info("Database engine closed successfully")
        except Exception as e:
            logger.error(f"Error closing database engine: {str(e)}")
            raise
