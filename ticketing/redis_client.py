"""Redis client used by the distributed event locks."""

import redis.asyncio as redis

from ticketing.config import Settings


def create_redis(settings: Settings) -> redis.Redis:
    """Create a Redis client for the configured server."""
    return redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )


async def close_redis(redis_client: redis.Redis | None) -> None:
    """Close Redis connection."""
    if redis_client is not None:
        await redis_client.aclose()
