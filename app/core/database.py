"""Async SQLAlchemy 2.0 database setup.

The engine (and its connection pool) is created once per process on first
use and released by ``dispose_engine`` from the application shutdown hook.
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import get_settings
from app.core.exceptions import DatabaseError
from app.core.logging import get_logger

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all models."""

    pass


def get_engine() -> AsyncEngine:
    """Return the process-wide async engine, creating it on first call."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.debug,
            pool_pre_ping=True,
        )
        logger.info("database.engine_created", dialect=_engine.dialect.name)
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Return the session maker bound to the shared engine."""
    global _session_maker
    if _session_maker is None:
        _session_maker = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_maker


async def dispose_engine() -> None:
    """Close all pooled connections and forget the engine.

    Safe to call when no engine was ever created.
    """
    global _engine, _session_maker
    if _engine is None:
        return
    await _engine.dispose()
    logger.info("database.engine_disposed")
    _engine = None
    _session_maker = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions.

    Yields:
        AsyncSession: Database session that auto-commits on success.
    """
    session_maker = get_session_maker()
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def translate_db_errors(operation: str, table: str | None = None) -> AsyncIterator[None]:
    """Re-raise driver and connection failures inside the block as DatabaseError.

    Besides SQLAlchemy errors this covers OSError raised while connecting
    (refused connections, timeouts), which asyncpg does not wrap.

    Args:
        operation: What was being attempted ("lookup", "insert", ...).
        table: Table involved, if any, for the message.
    """
    try:
        yield
    except (SQLAlchemyError, OSError) as e:
        target = f" on {table}" if table else ""
        raise DatabaseError(
            f"Database error during {operation}{target}: {str(e) or type(e).__name__}",
            details={"operation": operation, "table": table},
        ) from e
