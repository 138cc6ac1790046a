"""Health check endpoints."""

import logging

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from portfolio_ledger.core.cache import get_cache_stats
from portfolio_ledger.core.deps import DbSession

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@router.get("/health/db")
async def database_health(db: DbSession):
    """Database health check."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "database": type(e).__name__}
    return {"status": "healthy", "database": "connected"}


@router.get("/health/cache")
async def cache_health():
    """
    Quote cache status.

    ``disabled`` means Redis was unreachable at startup and quotes are
    fetched uncached.
    """
    stats = get_cache_stats()
    if stats.get("enabled"):
        return {"status": "healthy", "cache": stats}
    return {"status": "disabled", "cache": stats}
