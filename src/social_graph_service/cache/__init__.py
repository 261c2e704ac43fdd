"""Redis read-through cache for user profiles."""

from .redis_cache import RedisCache

__all__ = ["RedisCache"]
