"""
Table Orders — Redis connection pool for the idempotency cache

The client is built once in the app lifespan and handed to IdempotencyCache;
nothing else in the package reaches Redis.
"""
import redis.asyncio as aioredis

from table_orders.core.config import Settings


def create_redis(settings: Settings) -> aioredis.Redis:
    """Pool from REDIS_URL when set, otherwise from REDIS_HOST/PORT/DB/PASSWORD."""
    return aioredis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=settings.HEALTH_CHECK_TIMEOUT,
        socket_timeout=settings.HEALTH_CHECK_TIMEOUT,
    )
