"""
Redis cache for user profile reads.

Optional read-through layer in front of the graph's count queries. Every
user has two keys:
- ``profile:{id}``      JSON profile payload with a short TTL
- ``profile-ver:{id}``  invalidation counter, bumped by every edge mutation
                        and profile update touching the user

A reader takes the version before querying the graph and only populates the
profile if the version is still the same, so a read that raced a mutation
can never repopulate pre-mutation counts.

Cache failures never fail a request; every method degrades to a miss.
"""

import json
import logging
from typing import Any

from redis.asyncio import ConnectionPool, Redis

logger = logging.getLogger(__name__)

# KEYS[1]=version key, KEYS[2]=profile key; ARGV: expected version, ttl, payload
_POPULATE_IF_CURRENT = """
local current = redis.call('GET', KEYS[1]) or '0'
if current ~= ARGV[1] then
    return 0
end
redis.call('SETEX', KEYS[2], ARGV[2], ARGV[3])
return 1
"""

# KEYS alternate version key, profile key for each invalidated user
_INVALIDATE = """
for i = 1, #KEYS, 2 do
    redis.call('INCR', KEYS[i])
    redis.call('DEL', KEYS[i + 1])
end
return #KEYS / 2
"""


class RedisCache:
    """
    Versioned Redis cache for UserProfile payloads.

    Args:
        url: Redis connection URL
        ttl_seconds: TTL for profile entries
        key_prefix: Prefix for all cache keys
        max_connections: Maximum Redis connections in pool
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379",
        ttl_seconds: int = 60,
        key_prefix: str = "social:cache:",
        max_connections: int = 10,
    ):
        self.url = url
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix
        self.max_connections = max_connections

        self._pool: ConnectionPool | None = None
        self._redis: Redis | None = None
        self._initialized = False

    async def initialize(self) -> None:
        """Open the pool and check the server answers."""
        if self._initialized:
            return

        self._pool = ConnectionPool.from_url(
            self.url,
            max_connections=self.max_connections,
            decode_responses=True,
        )
        self._redis = Redis(connection_pool=self._pool)

        try:
            await self._redis.ping()
            self._initialized = True
            logger.info(f"RedisCache initialized: {self.url} (TTL={self.ttl_seconds}s)")
        except Exception as e:
            logger.error(f"RedisCache initialization failed: {e}")
            await self.close()
            raise

    async def close(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None
        if self._pool:
            await self._pool.aclose()
            self._pool = None
        self._initialized = False

    @property
    def available(self) -> bool:
        return self._initialized and self._redis is not None

    def profile_key(self, user_id: int) -> str:
        return f"{self.key_prefix}profile:{user_id}"

    def version_key(self, user_id: int) -> str:
        return f"{self.key_prefix}profile-ver:{user_id}"

    async def get_profile(self, user_id: int) -> dict[str, Any] | None:
        """Cached profile payload, or None on a miss or error."""
        if not self.available:
            return None
        try:
            value = await self._redis.get(self.profile_key(user_id))
            return json.loads(value) if value is not None else None
        except Exception as e:
            logger.warning(f"Cache get failed for user {user_id}: {e}")
            return None

    async def read_version(self, user_id: int) -> str | None:
        """
        Current invalidation version for a user.

        Must be read before the graph query whose result will be passed to
        populate_profile(). Returns None when the cache cannot be used, in
        which case the caller skips populating.
        """
        if not self.available:
            return None
        try:
            value = await self._redis.get(self.version_key(user_id))
            return value if value is not None else "0"
        except Exception as e:
            logger.warning(f"Cache version read failed for user {user_id}: {e}")
            return None

    async def populate_profile(self, user_id: int, payload: dict[str, Any], version: str) -> bool:
        """
        Store a profile only if no invalidation happened since ``version`` was read.

        Returns:
            True if the payload was stored, False if it was stale or on error
        """
        if not self.available:
            return False
        try:
            stored = await self._redis.eval(
                _POPULATE_IF_CURRENT,
                2,
                self.version_key(user_id),
                self.profile_key(user_id),
                version,
                self.ttl_seconds,
                json.dumps(payload),
            )
        except Exception as e:
            logger.warning(f"Cache populate failed for user {user_id}: {e}")
            return False
        if not stored:
            logger.debug(f"Skipped stale profile populate for user {user_id}")
        return bool(stored)

    async def invalidate_profiles(self, *user_ids: int) -> bool:
        """Bump the version and drop the cached profile of every given user."""
        if not self.available or not user_ids:
            return False
        keys: list[str] = []
        for uid in user_ids:
            keys.extend((self.version_key(uid), self.profile_key(uid)))
        try:
            await self._redis.eval(_INVALIDATE, len(keys), *keys)
            return True
        except Exception as e:
            logger.warning(f"Cache invalidation failed for users {user_ids}: {e}")
            return False
