"""Hooks adding, computing or removing fields of data, query and result."""

from collections.abc import Mapping
from typing import Any

from crudhooks.core.guards import skippable
from crudhooks.core.types import AsyncHook, HookContext
from crudhooks.core.utils import get_results, has_query, is_empty, omit, replace_results
from crudhooks.resolvers.resolver import Resolver, ResolverFn
from crudhooks.resolvers.virtuals import (
    PrepFn,
    filter_virtual,
    normalize_virtuals,
    resolve_virtual,
    serialize_virtuals,
)

# Either a list of keys to omit, or a virtuals mapping run in filter mode
Without = list[str] | Mapping[str, Any]


def with_data(virtuals: Mapping[str, Any], prep: PrepFn | None = None) -> AsyncHook:
    """Add or compute fields of context.data before a write."""
    normalized = normalize_virtuals(virtuals)

    async def hook(context: HookContext) -> HookContext:
        if context.data is None:
            return context
        context.data = await serialize_virtuals(
            resolve_virtual, context.data, normalized, context, prep
        )
        return context

    return hook


def with_query(resolvers: Mapping[str, ResolverFn]) -> AsyncHook:
    """Compute query fields with a dependency-aware Resolver."""
    resolver = Resolver(resolvers)

    async def hook(context: HookContext) -> HookContext:
        if not has_query(context):
            return context
        context.params["query"] = await resolver.resolve(context.params["query"], context)
        return context

    return hook


def with_result(virtuals: Mapping[str, Any], prep: PrepFn | None = None) -> AsyncHook:
    """Add or compute fields of every result record. Skippable as "with_result"."""
    normalized = normalize_virtuals(virtuals)

    async def hook(context: HookContext) -> HookContext:
        results = get_results(context)
        if is_empty(results):
            return context
        replace_results(
            context,
            await serialize_virtuals(resolve_virtual, results, normalized, context, prep),
        )
        return context

    return skippable("with_result", hook)


async def _without(value: Any, without: Without, context: HookContext, prep: PrepFn | None) -> Any:
    if isinstance(without, list):
        if isinstance(value, list):
            return [omit(item, without) for item in value]
        return omit(value, without)
    return await serialize_virtuals(
        filter_virtual, value, normalize_virtuals(without), context, prep
    )


def without_data(without: Without, prep: PrepFn | None = None) -> AsyncHook:
    """Remove fields from context.data. Skippable as "without_data"."""

    async def hook(context: HookContext) -> HookContext:
        if is_empty(context.data):
            return context
        context.data = await _without(context.data, without, context, prep)
        return context

    return skippable("without_data", hook)


def without_query(without: Without, prep: PrepFn | None = None) -> AsyncHook:
    """Remove fields from params["query"]. Skippable as "without_query"."""

    async def hook(context: HookContext) -> HookContext:
        if not has_query(context):
            return context
        context.params["query"] = await _without(context.params["query"], without, context, prep)
        return context

    return skippable("without_query", hook)


def without_result(without: Without, prep: PrepFn | None = None) -> AsyncHook:
    """Remove fields from every result record."""

    async def hook(context: HookContext) -> HookContext:
        results = get_results(context)
        if is_empty(results):
            return context
        replace_results(context, await _without(results, without, context, prep))
        return context

    return hook
