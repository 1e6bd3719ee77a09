"""Hooks redacting results and errors with a sanitize schema."""

from collections.abc import Callable
from typing import Any

from crudhooks.core.types import AsyncHook, HookContext
from crudhooks.core.utils import maybe_await
from crudhooks.sanitize import SanitizeSchema, sanitize

SchemaOrFn = SanitizeSchema | Callable[[HookContext], Any]


async def _resolve_schema(schema: SchemaOrFn, context: HookContext) -> SanitizeSchema:
    if callable(schema):
        return await maybe_await(schema(context))
    return schema


def sanitize_result(schema: SchemaOrFn) -> AsyncHook:
    """Redact context.result. schema may be a (sync or async) function of the context."""

    async def hook(context: HookContext) -> HookContext:
        if context.result is None:
            return context
        context.result = sanitize(context.result, await _resolve_schema(schema, context))
        return context

    return hook


def sanitize_error(schema: SchemaOrFn) -> AsyncHook:
    """Redact context.error in place; use as an error hook."""

    async def hook(context: HookContext) -> HookContext:
        if context.error is None:
            return context
        context.error = sanitize(context.error, await _resolve_schema(schema, context))
        return context

    return hook
