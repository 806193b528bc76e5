"""Database connection and session management."""

import logging
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import BigInteger, Integer, event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from ktree.config import get_settings

logger = logging.getLogger(__name__)

Base = declarative_base()

# BIGINT ids on Postgres; SQLite only autoincrements INTEGER PRIMARY KEY
IdType = BigInteger().with_variant(Integer, "sqlite")

# Global engine and sessionmaker
engine: Optional[AsyncEngine] = None
AsyncSessionLocal: Optional[async_sessionmaker[AsyncSession]] = None


def enable_sqlite_foreign_keys(async_engine: AsyncEngine) -> None:
    """Turn on ON DELETE CASCADE enforcement for every SQLite connection."""

    @event.listens_for(async_engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


async def init_db() -> None:
    """Initialize database connection."""
    global engine, AsyncSessionLocal

    settings = get_settings()

    engine_args: Dict[str, Any] = {
        "pool_pre_ping": True,
        "echo": settings.debug,
    }

    # SQLite (used in tests) doesn't support pool_size/max_overflow
    if not settings.db_url.startswith("sqlite"):
        engine_args["pool_size"] = settings.db_pool_size
        engine_args["max_overflow"] = settings.db_max_overflow

    engine = create_async_engine(
        settings.db_url,
        **engine_args,
    )

    AsyncSessionLocal = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    # For SQLite used in tests, create tables automatically
    if settings.db_url.startswith("sqlite"):
        enable_sqlite_foreign_keys(engine)
        # Register mapped tables before create_all
        import ktree.models  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    logger.info("Database initialised (%s)", engine.url.get_backend_name())


async def close_db() -> None:
    """Close database connection."""
    global engine

    if engine is not None:
        await engine.dispose()
        engine = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session for dependency injection."""
    if AsyncSessionLocal is None:
        await init_db()

    assert AsyncSessionLocal is not None

    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
