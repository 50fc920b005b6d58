from functools import lru_cache

from redis.asyncio import ConnectionPool, Redis

from shared.config import settings


@lru_cache
def get_redis_pool() -> ConnectionPool:
    return ConnectionPool.from_url(settings.REDIS_URL)


def get_redis() -> Redis:
    return Redis(connection_pool=get_redis_pool())


async def close_redis() -> None:
    """Disconnect the shared pool if one was ever created."""
    if get_redis_pool.cache_info().currsize:
        await get_redis_pool().disconnect()
        get_redis_pool.cache_clear()
