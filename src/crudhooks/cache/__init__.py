"""Result caching keyed by request signature."""

from crudhooks.cache.context_cache_map import DEFAULT_MAX_SIZE, ContextCacheMap

__all__ = ["ContextCacheMap", "DEFAULT_MAX_SIZE"]
