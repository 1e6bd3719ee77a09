"""crudhooks: request/response interceptors for CRUD services.

Interceptors ("hooks") run before, after or on error of a service method and
read or rewrite a shared HookContext. The package provides:
- join_query: query and sort by fields of related services
- context_cache: cache find/get results, invalidated by writes
- with_*/without_* serializers backed by a dependency-aware Resolver
- sanitize_result/sanitize_error, rate_limit, stashable, prevent_change
- Application/MemoryService to compose pipelines explicitly

Usage:
    from crudhooks import Application, MemoryService, JoinOption, join_query

    app = Application()
    app.use("api/artists", MemoryService(artists))
    joins = join_query({"artist": JoinOption("api/artists", "artist_id", "id")})
    app.use("api/albums", MemoryService(albums)).hooks(before=[joins], after=[joins])
"""

from crudhooks.cache import ContextCacheMap
from crudhooks.core import HookContext, HookType, Method, Paginate, ServiceOptions
from crudhooks.errors import (
    BadRequest,
    ConfigurationError,
    GeneralError,
    HookError,
    MethodNotAllowed,
    NotFound,
    TooManyRequests,
)
from crudhooks.hooks import JoinOption, context_cache, join_query
from crudhooks.resolvers import Resolver
from crudhooks.sanitize import sanitize
from crudhooks.services import Application, HookedService, MemoryService

__all__ = [
    "Application",
    "BadRequest",
    "ConfigurationError",
    "ContextCacheMap",
    "GeneralError",
    "HookContext",
    "HookError",
    "HookType",
    "HookedService",
    "JoinOption",
    "MemoryService",
    "Method",
    "MethodNotAllowed",
    "NotFound",
    "Paginate",
    "Resolver",
    "ServiceOptions",
    "TooManyRequests",
    "context_cache",
    "join_query",
    "sanitize",
]
