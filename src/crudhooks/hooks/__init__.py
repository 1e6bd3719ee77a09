"""Interceptors for service calls.

Every factory here returns an async hook ``(HookContext) -> HookContext``
to register on an Application or HookedService.
"""

from crudhooks.hooks.context_cache import context_cache
from crudhooks.hooks.join_query import JoinOption, join_query
from crudhooks.hooks.json_query import (
    json_query_client,
    json_query_parse,
    json_query_server,
    json_query_stringify,
)
from crudhooks.hooks.prevent_change import prevent_change
from crudhooks.hooks.rate_limit import (
    MemoryRateLimiter,
    RateLimitExceeded,
    RateLimitResult,
    rate_limit,
)
from crudhooks.hooks.registry import HookRegistry, hook
from crudhooks.hooks.sanitize import sanitize_error, sanitize_result
from crudhooks.hooks.serializers import (
    with_data,
    with_query,
    with_result,
    without_data,
    without_query,
    without_result,
)
from crudhooks.hooks.stashable import stashable

__all__ = [
    # Caching
    "context_cache",
    # Relations
    "JoinOption",
    "join_query",
    # JSON query transport
    "json_query_client",
    "json_query_parse",
    "json_query_server",
    "json_query_stringify",
    # Writes
    "prevent_change",
    "stashable",
    # Rate limiting
    "MemoryRateLimiter",
    "RateLimitExceeded",
    "RateLimitResult",
    "rate_limit",
    # Named hooks
    "HookRegistry",
    "hook",
    # Redaction
    "sanitize_error",
    "sanitize_result",
    # Serializers
    "with_data",
    "with_query",
    "with_result",
    "without_data",
    "without_query",
    "without_result",
]
