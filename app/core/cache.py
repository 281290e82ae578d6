"""
Redis cache configuration and utilities
Provides caching decorators and cache management functions
"""

import redis.asyncio as redis
from typing import Optional, Any, Union, Callable
from functools import wraps
import json
from datetime import timedelta, datetime
import logging

from .config import settings

logger = logging.getLogger(__name__)

class RedisCache:
    """Redis cache manager with in-memory fallback"""

    def __init__(self):
        self.redis_client: Optional[redis.Redis] = None
        self._fallback_cache: dict = {}  # In-memory fallback for development
        self._use_redis = False

    async def connect(self):
        """Initialize Redis connection"""
        if not settings.REDIS_URL:
            logger.info("REDIS_URL not set, using in-memory cache")
            return
        try:
            self.redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=settings.REDIS_DECODE_RESPONSES,
                max_connections=settings.REDIS_MAX_CONNECTIONS
            )
            await self.redis_client.ping()
            logger.info("Redis connection established")
            self._use_redis = True
        except (redis.RedisError, OSError) as e:
            logger.warning(f"Failed to connect to Redis, using in-memory fallback: {e}")
            self._use_redis = False

    async def disconnect(self):
        """Close Redis connection"""
        if self.redis_client:
            await self.redis_client.aclose()
            logger.info("Redis connection closed")

    async def ping(self) -> str:
        """Backend in use, raises RedisError when redis is up in config but down"""
        if self._use_redis and self.redis_client:
            await self.redis_client.ping()
            return "redis"
        return "memory"

    def _fallback_get(self, key: str) -> Optional[Any]:
        cache_item = self._fallback_cache.get(key)
        if not cache_item:
            return None
        if cache_item.get('expires_at') and datetime.now() > cache_item['expires_at']:
            del self._fallback_cache[key]
            return None
        return cache_item['value']

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        if not (self._use_redis and self.redis_client):
            return self._fallback_get(key)
        try:
            value = await self.redis_client.get(key)
            return json.loads(value) if value else None
        except redis.RedisError as e:
            logger.error(f"Cache get error: {e}")
            return None

    async def set(
        self,
        key: str,
        value: Any,
        expire: Optional[Union[int, timedelta]] = None
    ) -> bool:
        """Set a JSON-serializable value with optional expiration"""
        if isinstance(expire, timedelta):
            expire = int(expire.total_seconds())

        if not (self._use_redis and self.redis_client):
            cache_item = {'value': value}
            if expire:
                cache_item['expires_at'] = datetime.now() + timedelta(seconds=expire)
            self._fallback_cache[key] = cache_item
            return True

        try:
            payload = json.dumps(value)
            if expire:
                return await self.redis_client.setex(key, expire, payload)
            return await self.redis_client.set(key, payload)
        except redis.RedisError as e:
            logger.error(f"Cache set error: {e}")
            return False

    def clear_fallback(self):
        """Drop every in-memory entry"""
        self._fallback_cache.clear()

# Global cache instance
cache = RedisCache()

def cached(
    key_prefix: str,
    expire: Optional[Union[int, timedelta]] = 3600,
    key_func: Optional[Callable] = None
):
    """
    Decorator for caching function results

    Args:
        key_prefix: Prefix for cache key
        expire: Expiration time in seconds or timedelta
        key_func: Function to generate cache key from arguments
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            # Generate cache key
            if key_func:
                cache_key = f"{key_prefix}:{key_func(*args, **kwargs)}"
            else:
                key_parts = [str(arg) for arg in args]
                key_parts.extend(f"{k}={v}" for k, v in sorted(kwargs.items()))
                cache_key = f"{key_prefix}:{':'.join(key_parts)}"

            cached_value = await cache.get(cache_key)
            if cached_value is not None:
                return cached_value

            result = await func(*args, **kwargs)
            await cache.set(cache_key, result, expire)

            return result
        return wrapper
    return decorator
