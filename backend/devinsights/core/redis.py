"""Redis connection helper."""

import redis.asyncio as aioredis

from devinsights.config import settings


def get_async_redis(url: str | None = None) -> aioredis.Redis:
    """Create an async Redis client that returns ``str`` values."""
    return aioredis.from_url(url or settings.REDIS_URL, decode_responses=True)
