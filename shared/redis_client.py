"""
Redis client singleton for conversation persistence.

Only used when REDIS_URL is configured; otherwise the application runs with
the in-memory conversation store.
"""

import logging
from functools import lru_cache

import redis.asyncio as redis
from redis import ConnectionError as RedisConnectionError

from shared.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def get_redis_client() -> "redis.Redis[str]":
    """
    Get cached Redis client instance.

    Redis Key Patterns:
        - Conversations: conversation:{conversation_id}
        - Client index: client:{client_id}:conversations
        - Message log: client:{client_id}:messages
        - TTL: CONVERSATION_TTL_SECONDS (24 hours by default)

    Returns:
        Redis async client with connection pooling and retry on timeout
    """
    settings = get_settings()

    try:
        client = redis.from_url(
            settings.REDIS_URL,
            max_connections=20,
            decode_responses=True,
            retry_on_timeout=True,
            health_check_interval=30,
        )

        logger.info(
            f"Redis client initialized: {settings.REDIS_URL} "
            f"(max_connections=20, retry_on_timeout=True, health_check_interval=30s)"
        )
        return client

    except RedisConnectionError as e:
        logger.error(
            f"Redis connection failed: {e}. Conversations will not persist across restarts.",
            exc_info=True
        )
        raise


async def close_redis_client() -> None:
    """Close the Redis connection pool during application shutdown."""
    try:
        client = get_redis_client()
        await client.aclose()
        logger.info("Redis client closed")
    except Exception as e:
        logger.warning(f"Error closing Redis client: {e}")
