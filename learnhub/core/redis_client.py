"""
Redis client configuration for caching ranked lists
"""
import redis.asyncio as redis
import json
import logging
from typing import Any, Optional

from learnhub.core.config import settings

logger = logging.getLogger(__name__)

TRENDING_KEY_PREFIX = "trending"
POPULAR_SEARCHES_KEY_PREFIX = "popular_searches"


class CacheManager:
    """Redis cache manager; every operation degrades to a miss on failure"""

    def __init__(self, client: Optional[redis.Redis] = None):
        self.client = client

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def set_cache(self, key: str, value: Any, expire: int = 3600) -> bool:
        """Set cache value with expiration"""
        if not self.enabled:
            return False
        try:
            serialized_value = json.dumps(value, default=str) if not isinstance(value, str) else value
            await self.client.setex(key, expire, serialized_value)
            return True
        except Exception as e:
            logger.error(f"Failed to set cache for key {key}: {e}")
            return False

    async def get_cache(self, key: str) -> Optional[Any]:
        """Get cache value"""
        if not self.enabled:
            return None
        try:
            value = await self.client.get(key)
            if value is None:
                return None

            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return value
        except Exception as e:
            logger.error(f"Failed to get cache for key {key}: {e}")
            return None

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern"""
        if not self.enabled:
            return 0
        try:
            deleted = 0
            async for key in self.client.scan_iter(match=pattern):
                deleted += await self.client.delete(key)
            return deleted
        except Exception as e:
            logger.error(f"Failed to delete cache pattern {pattern}: {e}")
            return 0

    async def invalidate_trending(self) -> int:
        return await self.delete_pattern(f"{TRENDING_KEY_PREFIX}:*")

    async def invalidate_popular_searches(self) -> int:
        return await self.delete_pattern(f"{POPULAR_SEARCHES_KEY_PREFIX}:*")


# Shared cache manager; the client is attached by init_redis
cache_manager = CacheManager()


async def init_redis() -> redis.Redis:
    """Initialize Redis connection"""
    try:
        client = redis.from_url(
            settings.REDIS_URL,
            db=settings.REDIS_DB,
            decode_responses=True
        )

        await client.ping()
        cache_manager.client = client
        logger.info("Successfully connected to Redis")
        return client

    except Exception as e:
        logger.error(f"Failed to connect to Redis: {e}")
        raise


async def close_redis():
    """Close Redis connection"""
    if cache_manager.client is not None:
        await cache_manager.client.aclose()
        cache_manager.client = None
        logger.info("Redis connection closed")
