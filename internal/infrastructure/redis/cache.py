"""
Redis cache for upstream catalog lists.

Cache-Aside: raw list bodies are stored msgpack-encoded under
`catalog:<kind>` with a jittered TTL. Redis failures are logged and
treated as cache misses; the catalog is always loadable from upstream.
"""
import random
from typing import Any, Optional

import msgpack
from redis.asyncio import Redis
from redis.exceptions import RedisError

from internal.infrastructure.metrics import CATALOG_CACHE_LOOKUPS
from pkg.logger.logger import get_logger


logger = get_logger(__name__)


# Default TTL in seconds (5 minutes)
DEFAULT_TTL = 300
# Maximum jitter in seconds
MAX_JITTER = 60

KEY_PREFIX = "catalog:"


class CatalogCache:
    """
    Catalog list cache backed by Redis.

    Uses jitter on TTLs so that the lists cached by one refresh do not all
    expire in the same second.
    """

    def __init__(
        self,
        redis_url: str,
        default_ttl: int = DEFAULT_TTL,
        max_jitter: int = MAX_JITTER,
        client: Optional[Redis] = None,
    ) -> None:
        """
        Initialize the cache.

        Args:
            redis_url: Redis connection URL.
            default_ttl: TTL in seconds before jitter.
            max_jitter: Maximum jitter added to the TTL.
            client: Pre-built Redis client (tests pass a fake).
        """
        self._redis_url = redis_url
        self._default_ttl = default_ttl
        self._max_jitter = max_jitter
        self._redis: Optional[Redis] = client

    async def connect(self) -> None:
        """Connect and ping Redis."""
        if self._redis is None:
            self._redis = Redis.from_url(self._redis_url, decode_responses=False)
        await self._redis.ping()
        logger.info("Connected to Redis", url=self._redis_url)

    async def disconnect(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("Disconnected from Redis")

    def _key(self, kind: str) -> str:
        return f"{KEY_PREFIX}{kind}"

    def _ttl(self) -> int:
        return self._default_ttl + random.randint(0, self._max_jitter)

    async def get_list(self, kind: str) -> Optional[Any]:
        """
        Get a cached raw list body.

        Args:
            kind: Catalog list name (categories, products, ...).

        Returns:
            The cached body, or None on miss or Redis failure.
        """
        if self._redis is None:
            return None
        try:
            data = await self._redis.get(self._key(kind))
        except RedisError as e:
            logger.error("Cache get error", kind=kind, error=str(e))
            return None

        if data is None:
            CATALOG_CACHE_LOOKUPS.labels(kind=kind, result="miss").inc()
            logger.debug("Cache miss", kind=kind)
            return None

        CATALOG_CACHE_LOOKUPS.labels(kind=kind, result="hit").inc()
        logger.debug("Cache hit", kind=kind)
        return msgpack.unpackb(data, raw=False)

    async def set_list(self, kind: str, body: Any) -> bool:
        """
        Cache a raw list body.

        Returns:
            True if stored, False if Redis is unavailable.
        """
        if self._redis is None:
            return False
        try:
            data = msgpack.packb(body, use_bin_type=True, default=str)
            ttl = self._ttl()
            await self._redis.setex(self._key(kind), ttl, data)
        except RedisError as e:
            logger.error("Cache set error", kind=kind, error=str(e))
            return False
        logger.debug("Cache set", kind=kind, ttl=ttl)
        return True

    async def invalidate_all(self) -> int:
        """
        Drop every cached catalog list.

        Returns:
            Number of keys deleted.
        """
        if self._redis is None:
            return 0
        try:
            keys = [key async for key in self._redis.scan_iter(match=f"{KEY_PREFIX}*")]
            deleted = await self._redis.delete(*keys) if keys else 0
        except RedisError as e:
            logger.error("Cache invalidate error", error=str(e))
            return 0
        logger.info("Catalog cache invalidated", deleted=deleted)
        return deleted
