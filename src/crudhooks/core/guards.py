"""Placement checks and the skip_hooks escape hatch."""

import json
from collections.abc import Iterable
from functools import wraps
from typing import Any

from crudhooks.core.types import STANDARD_METHODS, Hook, HookContext, HookType
from crudhooks.core.utils import maybe_await
from crudhooks.errors import GeneralError

SKIP_ALL = "all"


def check_context(
    context: HookContext,
    type: str | None = None,
    methods: str | Iterable[str] | None = None,
    label: str = "anonymous",
) -> None:
    """Ensure a hook runs in the phase and on the methods it supports.

    Custom (non-standard) methods always pass the method check.

    Raises:
        GeneralError: If the phase or method is not allowed
    """
    if type and context.type != type:
        raise GeneralError(
            f"The '{label}' hook can only be used as a '{getattr(type, 'value', type)}' hook."
        )

    if not methods:
        return

    if context.method not in STANDARD_METHODS:
        return

    allowed = [methods] if isinstance(methods, str) else list(methods)
    if context.method not in allowed:
        raise GeneralError(
            f"The '{label}' hook can only be used on the "
            f"'{json.dumps([getattr(m, 'value', m) for m in allowed])}' service method(s)."
        )


def should_skip(name: str, context: HookContext) -> bool:
    """Check params["skip_hooks"] for name, "all", or the current phase."""
    skip_hooks: Any = context.params.get("skip_hooks")
    if not skip_hooks:
        return False

    if not isinstance(skip_hooks, list):
        raise GeneralError("The `skip_hooks` param must be a list of strings")

    return (
        name in skip_hooks
        or SKIP_ALL in skip_hooks
        or (HookType.BEFORE in skip_hooks and context.type == HookType.BEFORE)
        or (HookType.AFTER in skip_hooks and context.type == HookType.AFTER)
    )


def skippable(name: str, hook: Hook) -> Hook:
    """Wrap a hook so callers can opt out of it with params["skip_hooks"]."""

    @wraps(hook)
    async def wrapper(context: HookContext) -> HookContext:
        if should_skip(name, context):
            return context
        result = await maybe_await(hook(context))
        return context if result is None else result

    return wrapper
