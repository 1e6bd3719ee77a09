"""Virtual-field serializer behind with_data, with_result and the without_* hooks.

A virtuals mapping assigns each key a literal or a (sync or async) function
``(item, context, prep_result) -> value``:

    {
        "status": "active",
        "fullName": lambda item, ctx, prep: f"{item['first']} {item['last']}",
        "artist": fetch_artist,   # async def fetch_artist(item, ctx, prep)
    }

Keys starting with "@" run one at a time in declaration order, before the
rest run concurrently; they are written without the "@" so later virtuals
can read them from the item.
"""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from crudhooks.core.types import HookContext
from crudhooks.core.utils import maybe_await

ORDERED_PREFIX = "@"

VirtualFn = Callable[[dict[str, Any], HookContext, Any], Any]
PrepFn = Callable[[HookContext], Any]
Apply = Callable[["Virtual", dict[str, Any], HookContext, Any], Awaitable[None]]


@dataclass(frozen=True)
class Virtual:
    """A normalized virtual.

    Attributes:
        key: Output key (the "@" marker stripped)
        fn: Function computing the value
        ordered: Resolve sequentially before the concurrent group
    """

    key: str
    fn: VirtualFn
    ordered: bool = False


def _constant(value: Any) -> VirtualFn:
    def fn(item: dict[str, Any], context: HookContext, prep_result: Any) -> Any:
        return value

    return fn


def normalize_virtuals(virtuals: Mapping[str, Any]) -> list[Virtual]:
    """Turn a virtuals mapping into Virtuals, wrapping literals in functions."""
    normalized = []
    for name, value in virtuals.items():
        fn = value if callable(value) else _constant(value)
        if name.startswith(ORDERED_PREFIX):
            normalized.append(Virtual(name[len(ORDERED_PREFIX):], fn, ordered=True))
        else:
            normalized.append(Virtual(name, fn))
    return normalized


async def resolve_virtual(
    virtual: Virtual, item: dict[str, Any], context: HookContext, prep_result: Any
) -> None:
    """Set item[key] to the virtual's value, unless it is None."""
    value = await maybe_await(virtual.fn(item, context, prep_result))
    if value is not None:
        item[virtual.key] = value


async def filter_virtual(
    virtual: Virtual, item: dict[str, Any], context: HookContext, prep_result: Any
) -> None:
    """Drop item[key] when the virtual's value is falsy (None included)."""
    keep = await maybe_await(virtual.fn(item, context, prep_result))
    if not keep:
        item.pop(virtual.key, None)


async def _serialize_item(
    item: dict[str, Any],
    virtuals: list[Virtual],
    context: HookContext,
    prep_result: Any,
    apply: Apply,
) -> dict[str, Any]:
    updated = dict(item)

    for virtual in virtuals:
        if virtual.ordered:
            await apply(virtual, updated, context, prep_result)

    concurrent = [v for v in virtuals if not v.ordered]
    if concurrent:
        await asyncio.gather(*(apply(v, updated, context, prep_result) for v in concurrent))

    return updated


async def serialize_virtuals(
    apply: Apply,
    data: Any,
    virtuals: list[Virtual],
    context: HookContext,
    prep: PrepFn | None = None,
) -> Any:
    """Apply virtuals to a record, or to every record of a list concurrently.

    Args:
        apply: resolve_virtual (compute) or filter_virtual (keep/drop)
        data: A record dict or a list of them
        virtuals: Normalized virtuals
        context: The hook context handed to each virtual
        prep: Optional function of the context, run once; its result is
            handed to every virtual

    Returns:
        New record(s); the input is not mutated.
    """
    prep_result = await maybe_await(prep(context)) if prep else None

    if isinstance(data, list):
        return list(
            await asyncio.gather(
                *(_serialize_item(item, virtuals, context, prep_result, apply) for item in data)
            )
        )

    return await _serialize_item(data, virtuals, context, prep_result, apply)
