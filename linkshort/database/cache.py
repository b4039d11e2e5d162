"""Redis cache layer for link destinations."""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from .models import Link


class RedisCache:
    """Redis cache of short code -> destination and expiry.

    Cache failures are logged and treated as misses; the store stays the
    source of truth.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        ttl_seconds: int = 3600,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize Redis cache.

        Args:
            redis_url: Redis connection URL (e.g., redis://localhost:6379/0)
            ttl_seconds: Upper bound on TTL for cached items
            logger: Optional logger instance
        """
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.logger = logger or logging.getLogger(__name__)
        self.enabled = redis_url is not None
        self.client: Optional[redis.Redis] = None

        if redis_url:
            self.logger.info(f"Redis cache enabled with TTL={ttl_seconds}s")

    async def connect(self) -> None:
        """Connect to Redis."""
        if not self.enabled:
            return

        try:
            self.client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            await self.client.ping()
            self.logger.info("Connected to Redis")
        except (RedisError, OSError) as e:
            self.logger.error(f"Failed to connect to Redis: {e}")
            self.enabled = False

    async def get_destination(self, short_code: str) -> Optional[Link]:
        """Get cached destination for a short code.

        Args:
            short_code: The short code

        Returns:
            The link without its clicks, or None on miss
        """
        if not self.enabled or not self.client:
            return None

        try:
            raw = await self.client.get(self.get_cache_key(short_code))
        except (RedisError, OSError) as e:
            self.logger.error(f"Cache get error: {e}")
            return None

        if not raw:
            return None

        try:
            return Link.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            self.logger.warning(f"Discarding malformed cache entry for {short_code}: {e}")
            return None

    async def set_destination(self, link: Link, now: Optional[datetime] = None) -> bool:
        """Cache a link's destination until it expires (bounded by ttl_seconds).

        Args:
            link: The link to cache
            now: Current time, for computing remaining lifetime

        Returns:
            True if cached
        """
        if not self.enabled or not self.client:
            return False

        now = now or datetime.now(timezone.utc)
        remaining = int((link.expire_at - now).total_seconds())
        ttl = min(self.ttl_seconds, remaining)
        if ttl <= 0:
            return False

        # Destination only; clicks are always read from the store
        value = json.dumps({**link.to_dict(), "clicks": []})
        try:
            await self.client.setex(self.get_cache_key(link.short_code), ttl, value)
            return True
        except (RedisError, OSError) as e:
            self.logger.error(f"Cache set error: {e}")
            return False

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        if not self.enabled or not self.client:
            return False
        try:
            return bool(await self.client.ping())
        except (RedisError, OSError) as e:
            self.logger.error(f"Cache ping error: {e}")
            return False

    async def close(self) -> None:
        """Close Redis connection."""
        if self.client:
            await self.client.aclose()
            self.logger.info("Redis connection closed")

    def get_cache_key(self, short_code: str) -> str:
        """Generate cache key for short code.

        Args:
            short_code: The short code

        Returns:
            Cache key
        """
        return f"linkshort:link:{short_code}"
