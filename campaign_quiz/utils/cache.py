"""
Redis cache utility for read-time aggregates
"""
import redis
import json
import logging
from typing import Optional, Any
from campaign_quiz.config import settings

logger = logging.getLogger(__name__)

LEADERBOARD_KEY = "leaderboard:global"


class CacheService:
    """
    Redis-based JSON cache

    Caching is optional: if Redis is unreachable every call degrades to a
    miss, and callers recompute from the database.
    """

    def __init__(self, url: Optional[str] = None):
        try:
            self.redis_client = redis.from_url(
                url or settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5
            )
            # Test connection
            self.redis_client.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.warning(f"Redis connection failed: {str(e)}. Caching disabled.")
            self.redis_client = None

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache

        Args:
            key: Cache key

        Returns:
            Cached value or None
        """
        if not self.redis_client:
            return None

        try:
            value = self.redis_client.get(key)
            if value:
                logger.debug(f"Cache hit: {key}")
                return json.loads(value)
            logger.debug(f"Cache miss: {key}")
            return None
        except Exception as e:
            logger.error(f"Cache get error: {str(e)}")
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Set value in cache

        Args:
            key: Cache key
            value: Value to cache (must be JSON serializable)
            ttl: Time to live in seconds; 0 or less skips caching

        Returns:
            Success status
        """
        if not self.redis_client:
            return False

        if ttl is None:
            ttl = settings.LEADERBOARD_CACHE_TTL
        if ttl <= 0:
            return False

        try:
            self.redis_client.setex(key, ttl, json.dumps(value))
            logger.debug(f"Cache set: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"Cache set error: {str(e)}")
            return False

    def delete(self, key: str) -> bool:
        """Delete key from cache"""
        if not self.redis_client:
            return False

        try:
            self.redis_client.delete(key)
            logger.debug(f"Cache delete: {key}")
            return True
        except Exception as e:
            logger.error(f"Cache delete error: {str(e)}")
            return False

    def invalidate_leaderboard(self) -> bool:
        """Drop the cached leaderboard after any write that can change it"""
        return self.delete(LEADERBOARD_KEY)


# Global instance
cache_service = CacheService()
