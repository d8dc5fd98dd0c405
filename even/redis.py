"""Redis client for the request rate limiter.

Redis only backs rate limiting, and the limiter lets traffic through when it
has no client, so an unreachable Redis at startup is logged rather than
fatal.
"""

import os

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from even.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_REDIS_URL = "redis://localhost:6379/0"

_redis: aioredis.Redis | None = None


def get_redis_url() -> str:
    return os.getenv("REDIS_URL", DEFAULT_REDIS_URL)


def get_redis() -> aioredis.Redis:
    """The connected client; raises RuntimeError when Redis is unavailable."""
    if _redis is None:
        raise RuntimeError("Redis is not connected")
    return _redis


async def init_redis(url: str | None = None) -> aioredis.Redis | None:
    """Connect and ping. Returns None, leaving rate limiting off, if that fails."""
    global _redis
    url = url or get_redis_url()
    client = aioredis.from_url(url, decode_responses=True)
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.warning("redis_unavailable", error=str(e))
        await client.aclose()
        _redis = None
        return None

    _redis = client
    logger.info("redis_connected")
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
