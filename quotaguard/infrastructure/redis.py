"""
Redis Connection Module

This module provides the asynchronous Redis client shared by every quota check.
The counter records and the cached plan assignments all live in this store, and
it is the only coordination point between processes.

**Security Note**: Use a `rediss://` URL (REDIS_SSL=true) when the store is
reached over an untrusted network, and never log the assembled URL since it may
embed the password.

Functions:
    create_redis_client: Builds a client from settings.
"""

from redis.asyncio import Redis
import structlog

from quotaguard.core.config.settings import settings

logger = structlog.get_logger(__name__)


def create_redis_client(url: str | None = None) -> Redis:
    """
    Builds an asynchronous Redis client with decoded string responses.

    Args:
        url: Connection URL, defaults to settings.REDIS_URL

    Returns:
        Redis: A client using its own connection pool.
    """
    client = Redis.from_url(
        url or settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
    )
    logger.debug("redis_client_created")
    return client

