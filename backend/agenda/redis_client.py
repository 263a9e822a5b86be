from functools import lru_cache

from redis import Redis

from .config import settings


@lru_cache
def get_redis() -> Redis | None:
    """Shared Redis client, or None when REDIS_URL is not configured."""
    if not settings.redis_url:
        return None
    return Redis.from_url(settings.redis_url)
