from redis.asyncio import Redis
from redis.asyncio.connection import ConnectionPool

from line_webhook.core.config import get_settings

settings = get_settings()

# the pool connects lazily, nothing touches redis until the signature cache is used
redis_pool = ConnectionPool.from_url(settings.REDIS_URL, socket_connect_timeout=2)
redis_client = Redis(connection_pool=redis_pool)


async def close_redis():
    """Close Redis connections on app shutdown."""
    await redis_client.aclose()
    await redis_pool.disconnect()
