"""
Redis Connection

Optional async Redis client. Certificate numbering uses it to claim candidate
numbers atomically across workers; when Redis is down the database unique
constraint is the only guard.
"""

import logging

from redis.asyncio import Redis, from_url

from sms_certificates.core.config import settings

logger = logging.getLogger(__name__)

redis_client: Redis | None = None


async def init_redis() -> Redis:
    """Connect to Redis and verify the connection. Call on application startup."""
    global redis_client
    client = from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    await client.ping()
    redis_client = client
    return redis_client


async def get_redis() -> Redis | None:
    """FastAPI dependency returning the shared client, or None when unavailable."""
    return redis_client


async def claim_key(client: Redis, key: str, ttl_seconds: int) -> bool:
    """
    Atomically claim a key for `ttl_seconds`.

    Returns True only for the first caller; concurrent callers get False
    until the key expires.
    """
    claimed = await client.set(key, "1", nx=True, ex=ttl_seconds)
    return bool(claimed)


async def close_redis() -> None:
    """Close the Redis connection on shutdown."""
    global redis_client
    if redis_client is not None:
        await redis_client.aclose()
        redis_client = None
        logger.info("Redis connection closed")
