"""Helpers shared by interceptors: traversal, cloning, result access.

traverse() and async_traverse() walk query-shaped structures only: nested
dicts and lists of dicts. The callback is called for every key/value pair of
every dict, children first, and may mutate the dict it is given.
"""

import asyncio
import inspect
import json
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from crudhooks.core.types import HookContext, Method

TraverseCallback = Callable[[dict[str, Any], str, Any], Any]
AsyncTraverseCallback = Callable[[dict[str, Any], str, Any], Awaitable[Any]]


async def maybe_await(value: Any) -> Any:
    """Await value if it is awaitable, else return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


def is_object(value: Any) -> bool:
    return isinstance(value, dict)


def is_empty(value: Any) -> bool:
    """True for None and for empty dicts/lists."""
    if value is None:
        return True
    return len(value) == 0


def has_query(context: HookContext) -> bool:
    return not is_empty(context.params.get("query"))


def traverse(obj: Any, callback: TraverseCallback) -> Any:
    if not is_object(obj):
        return obj

    for key, value in list(obj.items()):
        if isinstance(value, list):
            for child in value:
                traverse(child, callback)
        if is_object(value):
            traverse(value, callback)
        callback(obj, key, value)

    return obj


async def async_traverse(obj: Any, callback: AsyncTraverseCallback) -> Any:
    """Like traverse(), but siblings (and their subtrees) run concurrently."""
    if not is_object(obj):
        return obj

    async def visit(key: str, value: Any) -> None:
        if isinstance(value, list):
            await asyncio.gather(*(async_traverse(child, callback) for child in value))
        if is_object(value):
            await async_traverse(value, callback)
        await callback(obj, key, value)

    await asyncio.gather(*(visit(key, value) for key, value in list(obj.items())))
    return obj


def clone(obj: Any) -> Any:
    """Deep copy dicts and lists; every other value is shared."""
    if isinstance(obj, dict):
        return {key: clone(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [clone(value) for value in obj]
    return obj


def omit(obj: dict[str, Any], keys: Iterable[str]) -> dict[str, Any]:
    """Shallow copy of obj without keys. Dotted keys remove nested values."""
    result = dict(obj)
    for key in keys:
        _unset(result, key.split("."))
    return result


def _unset(obj: dict[str, Any], path: list[str]) -> None:
    head, rest = path[0], path[1:]
    if head not in obj:
        return
    if not rest:
        del obj[head]
        return
    child = obj[head]
    if is_object(child):
        # Copy on the way down so the caller's nested dicts are untouched
        obj[head] = dict(child)
        _unset(obj[head], rest)


def pick(obj: dict[str, Any], *keys: str) -> dict[str, Any]:
    return {key: obj[key] for key in keys if obj.get(key) is not None}


def get_results(context: HookContext) -> Any:
    """The record(s) of context.result, unwrapping a paginated find."""
    if context.method == Method.FIND and is_object(context.result):
        return context.result.get("data", context.result)
    return context.result


def replace_results(context: HookContext, results: Any) -> None:
    """Write record(s) back to context.result, keeping a paginated envelope."""
    if context.method == Method.FIND:
        records = results if isinstance(results, list) else [results]
        if is_object(context.result) and "data" in context.result:
            context.result["data"] = records
        else:
            context.result = records
    else:
        context.result = results


def _json_default(value: Any) -> Any:
    raise TypeError(f"Cannot stringify non JSON value of type {type(value).__name__}")


def stable_stringify(obj: Any) -> str:
    """JSON with keys sorted at every level, so equal queries serialize equally."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), default=_json_default)
