"""
Async Redis client with connection pooling.

Redis is the Celery broker; the API only needs it to report broker health.
"""

import structlog
from typing import Optional

from redis.asyncio import ConnectionPool as AsyncConnectionPool
from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError

from grounded_probe.config import Settings

logger = structlog.get_logger(__name__)


class RedisClient:
    """Process-wide async connection pool for the broker Redis."""

    _async_pool: Optional[AsyncConnectionPool] = None

    @classmethod
    def get_async_client(cls, settings: Settings) -> AsyncRedis:
        """
        Get asynchronous Redis client with connection pooling.

        Args:
            settings: Application settings

        Returns:
            AsyncRedis client instance
        """
        if cls._async_pool is None:
            cls._async_pool = AsyncConnectionPool.from_url(
                settings.REDIS_URL,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                decode_responses=True,
                socket_timeout=5,
                socket_connect_timeout=5,
            )
            logger.info("Initialized Redis async connection pool")

        return AsyncRedis(connection_pool=cls._async_pool)

    @classmethod
    async def close_async_pool(cls):
        """Close async connection pool."""
        if cls._async_pool is not None:
            await cls._async_pool.disconnect()
            cls._async_pool = None
            logger.info("Closed Redis async connection pool")


async def ping_redis(settings: Settings) -> bool:
    """Return True if the broker Redis answers PING."""
    try:
        return bool(await RedisClient.get_async_client(settings).ping())
    except (RedisError, OSError) as e:
        logger.warning("Redis health check failed", error=str(e))
        return False
