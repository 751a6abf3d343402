"""
Redis connection setup using redis-py async client.

Holds every piece of short-lived matching state: the eligible-channel
cache, redirect tokens, attribution paths, daily counters, the matching
work queue and the outbound event streams.
"""

import redis.asyncio as aioredis

from channel_service.config import settings

redis = aioredis.from_url(
    settings.REDIS_URL,
    decode_responses=True,
    ssl=settings.REDIS_SSL,
)


async def get_redis() -> aioredis.Redis:
    """FastAPI dependency that provides the Redis client."""
    return redis
