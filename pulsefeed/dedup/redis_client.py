"""Redis connection factory for the durable dedup store."""

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ..config.settings import RedisSettings
from ..utils.logging import get_logger_for_component

logger = get_logger_for_component("redis")


def create_redis_client(settings: RedisSettings) -> Redis:
    """Build an asyncio Redis client; no connection is opened until first use."""
    return Redis.from_url(
        settings.url,
        socket_timeout=settings.socket_timeout,
        socket_connect_timeout=settings.socket_timeout,
        decode_responses=True,
    )


async def ping_redis(client: Redis) -> bool:
    try:
        return bool(await client.ping())
    except (RedisError, OSError) as e:
        logger.error(f"Redis ping failed: {e}")
        return False
