"""HTTP caching for quote provider requests using requests-cache and Redis."""

import logging
from datetime import timedelta
from typing import Any

import requests_cache
from redis import Redis
from redis.exceptions import RedisError
from requests_cache.backends.redis import RedisCache

from portfolio_ledger.core.config import settings

logger = logging.getLogger(__name__)

CACHE_NAMESPACE = "quotes"


def cache_expiration() -> dict[str, timedelta]:
    """Expiration per kind of Yahoo Finance response.

    Quotes expire after ``QUOTE_CACHE_SECONDS``; the daily history used as a
    fallback can be kept a little longer, and symbol search results for an
    hour.
    """
    quote_ttl = timedelta(seconds=settings.QUOTE_CACHE_SECONDS)
    return {
        "quote": quote_ttl,
        "daily_history": max(quote_ttl, timedelta(minutes=5)),
        "search": timedelta(hours=1),
        "default": quote_ttl,
    }


def get_redis_connection() -> "Redis[Any] | None":
    """
    Get Redis connection for caching.

    Returns:
        Redis client instance or None if connection fails

    Note:
        Returns None when Redis is unreachable so the app keeps running
        without a cache.
    """
    try:
        redis_client: Redis[Any] = Redis.from_url(
            settings.REDIS_URL,
            decode_responses=False,  # requests-cache stores binary responses
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        redis_client.ping()
        logger.info(f"Connected to Redis at {settings.REDIS_URL}")
        return redis_client
    except RedisError as e:
        logger.warning(f"Failed to connect to Redis: {e}. Quote caching will be disabled.")
        return None


def configure_quote_cache() -> bool:
    """
    Install requests-cache with a Redis backend for quote lookups.

    Called once during app startup. Returns True when the cache is active.
    """
    redis_conn = get_redis_connection()
    if redis_conn is None:
        logger.warning("Skipping quote cache configuration - Redis unavailable")
        return False

    expiration = cache_expiration()
    try:
        backend = RedisCache(namespace=CACHE_NAMESPACE, connection=redis_conn)
        requests_cache.install_cache(
            backend=backend,
            urls_expire_after={
                "*/v7/finance/quote*": expiration["quote"],
                "*/v8/finance/chart/*interval=1d*": expiration["daily_history"],
                "*/v8/finance/chart/*": expiration["quote"],
                "*/v1/finance/search*": expiration["search"],
            },
            expire_after=expiration["default"],
            allowable_methods=("GET",),
            stale_if_error=True,
        )
    except RedisError as e:
        logger.error(f"Failed to configure quote cache: {e}")
        return False

    logger.info(f"Configured quote cache with Redis backend (quotes: {expiration['quote']})")
    return True


def get_cache_stats() -> dict[str, Any]:
    """
    Cache status for the health endpoint.

    Returns:
        ``enabled``, and when enabled the ``backend`` class name and number
        of cached responses
    """
    cache = requests_cache.get_cache()
    if cache is None:
        return {"enabled": False}

    stats: dict[str, Any] = {"enabled": True, "backend": type(cache).__name__}
    try:
        stats["size"] = len(cache.responses)
    except RedisError as e:
        logger.warning(f"Could not read quote cache size: {e}")
        stats["size"] = "unavailable"
    return stats
