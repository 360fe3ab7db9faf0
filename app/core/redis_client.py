"""Shared Redis connection plus the cache and throttling built on it.

Redis is an accelerator here, never a source of truth: the cache answers
"miss" and the limiter answers "allowed" whenever Redis misbehaves.
"""

import json
from typing import Any

import redis
from structlog import get_logger

from app.config import settings

logger = get_logger(__name__)

_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """Lazily build the process wide Redis client."""
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """Ping Redis."""
    try:
        get_redis_client().ping()
    except redis.RedisError:
        return False
    return True


def close_redis_connection() -> None:
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


class RateLimiter:
    """
    Fixed window request counter.

    The first hit in a window creates the counter and sets its expiry, later
    hits only increment it.
    """

    def __init__(self, redis_client: redis.Redis, limit: int, window: int = 60):
        self.redis = redis_client
        self.limit = limit
        self.window = window

    def hit(self, key: str) -> bool:
        """
        Count one request against ``key``.

        Args:
            key: Counter key, e.g. ``ratelimit:dni:<client ip>``

        Returns:
            False once more than ``limit`` requests were seen in the window
        """
        try:
            count = int(self.redis.incr(key))
            if count == 1:
                self.redis.expire(key, self.window)
        except Exception as e:
            logger.warning("rate_limit_unavailable", key=key, error=str(e))
            return True
        return count <= self.limit


class CacheManager:
    """String and JSON values with optional expiry."""

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        try:
            if ttl:
                self.redis.setex(key, ttl, value)
            else:
                self.redis.set(key, value)
        except Exception:
            return False
        return True

    def delete(self, key: str) -> bool:
        try:
            self.redis.delete(key)
        except Exception:
            return False
        return True

    def exists(self, key: str) -> bool:
        try:
            return bool(self.redis.exists(key))
        except Exception:
            return False

    def get_json(self, key: str) -> Any | None:
        """Decoded JSON stored under ``key``, or None on a miss or unreadable value."""
        try:
            raw = self.redis.get(key)
            if not isinstance(raw, (str, bytes)) or not raw:
                return None
            return json.loads(raw)
        except Exception:
            return None

    def set_json(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store ``value`` as JSON; datetimes and UUIDs are written as strings."""
        return self.set(key, json.dumps(value, default=str), ttl=ttl)
