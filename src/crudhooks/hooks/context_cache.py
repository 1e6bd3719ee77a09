"""Interceptor serving find/get from a ContextCacheMap and invalidating it on writes."""

from crudhooks.cache.context_cache_map import ContextCacheMap
from crudhooks.core.types import AsyncHook, HookContext, HookType, Method

READ_METHODS = (Method.FIND, Method.GET)


def context_cache(cache_map: ContextCacheMap) -> AsyncHook:
    """Use as both a before and an after hook on every method.

    Before find/get, a cache hit sets context.result, which skips the service
    call. After find/get the result is stored; after any other method the
    map is cleared of entries the write may have made stale.
    """

    async def hook(context: HookContext) -> HookContext:
        if context.type == HookType.BEFORE:
            if context.method in READ_METHODS:
                value = await cache_map.get(context)
                if value is not None:
                    context.result = value
        elif context.type == HookType.AFTER:
            if context.method in READ_METHODS:
                await cache_map.set(context)
            else:
                await cache_map.clear(context)
        return context

    return hook
