from __future__ import annotations

import logging
from functools import lru_cache

import redis.asyncio as redis

from chalet_booking.core.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_redis_client() -> redis.Redis:
    """Shared Redis client for session stores."""
    settings = get_settings()
    return redis.Redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=False,
    )


async def close_redis_client() -> None:
    """Close shared Redis connection if it was created."""
    if get_redis_client.cache_info().currsize == 0:
        return

    client = get_redis_client()
    try:
        await client.aclose()
    except redis.RedisError as exc:
        logger.warning("Failed to close Redis client: %s", exc)
    finally:
        get_redis_client.cache_clear()


__all__ = ["get_redis_client", "close_redis_client"]
