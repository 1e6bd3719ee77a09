"""Core types and helpers shared by every crudhooks interceptor."""

from crudhooks.core.guards import check_context, should_skip, skippable
from crudhooks.core.types import (
    STANDARD_METHODS,
    WRITE_METHODS,
    Hook,
    HookContext,
    HookType,
    Method,
    Paginate,
    Service,
    ServiceOptions,
)
from crudhooks.core.utils import (
    async_traverse,
    clone,
    get_results,
    has_query,
    is_empty,
    is_object,
    maybe_await,
    omit,
    pick,
    replace_results,
    stable_stringify,
    traverse,
)

__all__ = [
    # Types
    "Hook",
    "HookContext",
    "HookType",
    "Method",
    "Paginate",
    "STANDARD_METHODS",
    "Service",
    "ServiceOptions",
    "WRITE_METHODS",
    # Guards
    "check_context",
    "should_skip",
    "skippable",
    # Utils
    "async_traverse",
    "clone",
    "get_results",
    "has_query",
    "is_empty",
    "is_object",
    "maybe_await",
    "omit",
    "pick",
    "replace_results",
    "stable_stringify",
    "traverse",
]
