"""Database session management with transaction utilities.

This module provides:
- The async engine and session factory
- ``get_db`` for FastAPI dependency injection (one session per request)
- ``transactional`` for explicit all-or-nothing units of work
- ``read_only_transaction`` for reads that must never commit

Sessions are always passed explicitly into services; nothing in the ledger
holds a module-level connection.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from portfolio_ledger.core.config import settings
from portfolio_ledger.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)


def engine_options(database_url: str) -> dict[str, Any]:
    """Engine keyword arguments for ``database_url``.

    SQLite drivers use their own pool classes and reject sizing options.
    """
    options: dict[str, Any] = {"echo": settings.DB_ECHO}
    if not database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
        )
    return options


engine = create_async_engine(settings.DATABASE_URL, **engine_options(settings.DATABASE_URL))

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency for route handlers.

    Commits whatever is still pending when the handler returns and rolls
    back if it raised.

    Yields:
        AsyncSession: Database session for the request
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def transactional(
    db: AsyncSession,
    *,
    commit: bool = True,
) -> AsyncGenerator[AsyncSession, None]:
    """Explicit transaction scope with automatic commit/rollback.

    Every statement issued inside the block belongs to one unit of work.
    On success the unit is committed; on any exception it is rolled back and
    the exception re-raised. Database errors (including a failed commit) are
    re-raised as ``PersistenceError`` so callers see one error type for
    infrastructure failures.

    Args:
        db: The database session
        commit: Whether to commit on success (default: True)

    Example:
        ```python
        async with transactional(db):
            db.add(lot)
            db.add(transaction)
            # Both rows commit together or neither does
        ```
    """
    try:
        yield db
        if commit:
            await db.commit()
            logger.debug("Transaction committed successfully")
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Transaction rolled back due to database error: {type(e).__name__}: {e}")
        raise PersistenceError(f"Database operation failed: {type(e).__name__}") from e
    except Exception as e:
        await db.rollback()
        logger.info(f"Transaction rolled back: {type(e).__name__}: {e}")
        raise


@asynccontextmanager
async def read_only_transaction(
    db: AsyncSession,
) -> AsyncGenerator[AsyncSession, None]:
    """Read-only transaction scope (never commits).

    Use this for valuation and query reads. Objects added inside the block
    are never committed by it.

    Example:
        ```python
        async with read_only_transaction(db):
            lots = await LotRepository(Lot, db).get_active_lots(owner_id)
        ```
    """
    try:
        yield db
    except SQLAlchemyError as e:
        logger.error(f"Read-only transaction error: {type(e).__name__}: {e}")
        raise PersistenceError(f"Database read failed: {type(e).__name__}") from e
