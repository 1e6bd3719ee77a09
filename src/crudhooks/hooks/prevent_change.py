"""Keep protected fields out of update and patch payloads."""

import logging
from collections.abc import Mapping
from typing import Any

from crudhooks.core.guards import check_context, skippable
from crudhooks.core.types import AsyncHook, HookContext, HookType, Method
from crudhooks.core.utils import omit
from crudhooks.errors import GeneralError
from crudhooks.resolvers.virtuals import (
    PrepFn,
    filter_virtual,
    normalize_virtuals,
    serialize_virtuals,
)

logger = logging.getLogger(__name__)


def prevent_change(
    virtuals: list[str] | Mapping[str, Any], prep: PrepFn | None = None
) -> AsyncHook:
    """Strip protected keys from context.data before update/patch.

    virtuals is a list of keys to strip, or a filter-mode virtuals mapping
    (falsy value -> key stripped). An update would replace the stripped
    fields with nothing, so it is turned into a patch of the remaining
    fields on the raw service and short-circuits with that result.

    Skippable as "prevent_change".
    """

    async def hook(context: HookContext) -> HookContext:
        check_context(context, HookType.BEFORE, [Method.UPDATE, Method.PATCH], "prevent_change")

        if isinstance(virtuals, list):
            context.data = omit(context.data, virtuals)
        else:
            context.data = await serialize_virtuals(
                filter_virtual, context.data, normalize_virtuals(virtuals), context, prep
            )

        if context.method == Method.UPDATE:
            raw = getattr(context.service, "raw", None)
            patch: Any = getattr(raw, "patch", None)
            if patch is None:
                raise GeneralError(
                    f"Service '{context.path}' has no raw patch method for prevent_change"
                )
            logger.debug("prevent_change turned update of %s into patch", context.id)
            context.result = await patch(context.id, context.data, context.params)

        return context

    return skippable("prevent_change", hook)
