"""Redis connection setup."""

import logging
import os

import redis.asyncio as redis

logger = logging.getLogger(__name__)

# Default Redis URL
DEFAULT_REDIS_URL = "redis://localhost:6379"

# Global Redis client (set during app startup)
_redis_client: redis.Redis | None = None


def get_redis_url() -> str:
    """Get Redis URL from environment."""
    return os.getenv("REDIS_URL", DEFAULT_REDIS_URL)


async def create_redis_client() -> redis.Redis:
    """Create and return a Redis client."""
    url = get_redis_url()
    logger.info("Connecting to Redis at %s", url)
    client = redis.from_url(url, decode_responses=True)
    await client.ping()
    logger.info("Redis connection established")
    return client


async def get_redis() -> redis.Redis:
    """Get the global Redis client.

    Raises:
        RuntimeError: If Redis is not initialized.
    """
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client


async def init_redis() -> redis.Redis:
    """Initialize the global Redis client."""
    global _redis_client
    _redis_client = await create_redis_client()
    return _redis_client


async def close_redis() -> None:
    """Close the Redis connection."""
    global _redis_client
    if _redis_client:
        await _redis_client.close()
        _redis_client = None
        logger.info("Redis connection closed")


async def health_check() -> dict:
    """Check Redis health.

    Returns:
        Health status dict.
    """
    try:
        client = await get_redis()
        await client.ping()
        info = await client.info("server")
        return {
            "status": "healthy",
            "redis_version": info.get("redis_version"),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
        }

