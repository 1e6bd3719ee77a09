"""Ship a query as one JSON string so its types survive string-only transports.

The client side stringifies params["query"] into {"json": "..."}; the server
side parses it back before any other hook sees it.
"""

import json
from typing import Any

from crudhooks.core.guards import check_context
from crudhooks.core.types import STANDARD_METHODS, AsyncHook, HookContext, HookType

DEFAULT_PROP_NAME = "json"


def _options(context: HookContext, param: str, overwrite: bool, prop_name: str) -> tuple[bool, str]:
    overrides: dict[str, Any] = context.params.get(param) or {}
    return (
        overrides.get("overwrite", overwrite),
        overrides.get("prop_name", prop_name),
    )


def json_query_stringify(overwrite: bool = True, prop_name: str = DEFAULT_PROP_NAME) -> AsyncHook:
    """Before hook replacing (or extending) the query with its JSON string.

    Per-request overrides come from params["json_query_stringify"].
    """

    async def hook(context: HookContext) -> HookContext:
        check_context(context, HookType.BEFORE, label="json_query_stringify")
        query = context.params.get("query")
        if not query:
            return context

        replace, name = _options(context, "json_query_stringify", overwrite, prop_name)
        if replace:
            context.params["query"] = {name: json.dumps(query)}
        else:
            context.params["query"] = {**query, name: json.dumps(query)}
        return context

    return hook


def json_query_parse(overwrite: bool = True, prop_name: str = DEFAULT_PROP_NAME) -> AsyncHook:
    """Before hook restoring a query stringified by json_query_stringify.

    Per-request overrides come from params["json_query_parse"].
    """

    async def hook(context: HookContext) -> HookContext:
        check_context(context, HookType.BEFORE, label="json_query_parse")
        query = context.params.get("query")
        if not query:
            return context

        replace, name = _options(context, "json_query_parse", overwrite, prop_name)
        if name not in query:
            return context

        parsed = json.loads(query[name])
        if replace:
            context.params["query"] = parsed
        else:
            context.params["query"] = {**query, name: parsed}
        return context

    return hook


def json_query_client(app: Any) -> None:
    """Append json_query_stringify to every method of every registered service.

    Call after all services are set up so the hook runs last.
    """
    for service in app.services.values():
        service.hooks(before={method: [json_query_stringify()] for method in STANDARD_METHODS})


def json_query_server(app: Any) -> None:
    """Add json_query_parse as an app before hook; call before any other app.hooks()."""
    app.hooks(before={"all": [json_query_parse()]})
