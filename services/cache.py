"""
Cache backends for availability and reservation listings.

Cache entries are advisory: every failure is logged and treated as a miss
(on read) or skipped (on write), never raised to the caller.
"""
import logging
import threading
import time
from typing import Dict, Optional, Tuple

import redis

from core.config import Settings, settings as default_settings


logger = logging.getLogger(__name__)


class Cache:
    """Interface shared by the cache backends."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def delete_prefix(self, prefix: str) -> None:
        raise NotImplementedError


class RedisCache(Cache):
    """Redis-backed cache."""

    def __init__(self, client: redis.Redis):
        """
        Initialize RedisCache.

        Args:
            client: Connected redis client (``decode_responses=True``)
        """
        self.client = client

    @classmethod
    def from_url(cls, url: str, max_connections: int = 10) -> "RedisCache":
        pool = redis.ConnectionPool.from_url(
            url,
            max_connections=max_connections,
            decode_responses=True,
        )
        return cls(redis.Redis(connection_pool=pool))

    def get(self, key: str) -> Optional[str]:
        try:
            return self.client.get(key)
        except redis.RedisError as e:
            logger.error(f"Error getting key {key} from Redis: {e}")
            return None

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        try:
            if ttl:
                self.client.setex(key, ttl, value)
            else:
                self.client.set(key, value)
        except redis.RedisError as e:
            logger.error(f"Error setting key {key} in Redis: {e}")

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            logger.error(f"Error deleting key {key} from Redis: {e}")

    def delete_prefix(self, prefix: str) -> None:
        try:
            keys = list(self.client.scan_iter(match=f"{prefix}*", count=500))
            if keys:
                self.client.delete(*keys)
        except redis.RedisError as e:
            logger.error(f"Error deleting prefix {prefix} from Redis: {e}")


class MemoryCache(Cache):
    """In-process cache with per-key expiry, used when no Redis URL is configured."""

    def __init__(self, default_ttl: Optional[int] = None, clock=time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            value, expires_at = item
            if expires_at is not None and expires_at <= self._clock():
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        ttl = ttl or self.default_ttl
        expires_at = self._clock() + ttl if ttl else None
        with self._lock:
            self._data[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def delete_prefix(self, prefix: str) -> None:
        with self._lock:
            for key in [k for k in self._data if k.startswith(prefix)]:
                del self._data[key]

    def __len__(self) -> int:
        return len(self._data)


def build_cache(config: Optional[Settings] = None) -> Cache:
    """Pick the cache backend from settings."""
    config = config or default_settings
    if config.redis_url:
        logger.info("Using Redis cache")
        return RedisCache.from_url(config.redis_url, config.redis_max_connections)
    logger.info("No Redis URL configured, using in-process cache")
    return MemoryCache(default_ttl=config.cache_ttl_seconds)
