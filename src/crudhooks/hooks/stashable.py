"""Lazily fetch the records a write is about to change."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from crudhooks.core.guards import check_context
from crudhooks.core.types import AsyncHook, HookContext, HookType, Method
from crudhooks.core.utils import maybe_await

StashFn = Callable[[HookContext], Any]


async def _default_stash(context: HookContext) -> Any:
    if context.id is None:
        return await context.service.find({**context.params, "paginate": False})
    return await context.service.get(context.id, dict(context.params))


def stashable(prop_name: str = "stashed", stash_func: StashFn | None = None) -> AsyncHook:
    """Before update/patch/remove: put a memoized fetch of the current record(s) on params.

    Nothing is fetched until a later hook calls ``params[prop_name]()``; every
    call returns the same awaitable:

        before = await context.params["stashed"]()
    """
    stash = stash_func or _default_stash

    async def hook(context: HookContext) -> HookContext:
        check_context(
            context,
            HookType.BEFORE,
            [Method.UPDATE, Method.PATCH, Method.REMOVE],
            "stashable",
        )

        task: asyncio.Future[Any] | None = None

        def stashed() -> Awaitable[Any]:
            nonlocal task
            if task is None:
                task = asyncio.ensure_future(maybe_await(stash(context)))
            return task

        context.params[prop_name] = stashed
        return context

    return hook
