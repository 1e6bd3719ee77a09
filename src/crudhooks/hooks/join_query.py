"""Query across relations by rewriting relation predicates into foreign-key $in lookups.

Given a relation option

    join_query({
        "artist": JoinOption(service="api/artists", foreign_key="artist_id", target_key="id"),
    })

a query on api/albums like ``{"artist": {"name": "Johnny Cash"}}`` or
``{"artist.name": "Johnny Cash"}`` first finds the matching artists, then
becomes ``{"$and": [{"artist_id": {"$in": [1]}}]}``. Relation predicates are
rewritten at any depth, including inside $or/$and lists.

Sorting by a relation field (``{"$sort": {"artist.name": -1}}``) cannot be done
by the service itself. For find, the whole matching set is fetched, reordered
by the relation's own sorted key list and paginated here. For multi-record
writes the (unpaginated) result is reordered in the after phase.

Use the same hook as a before and an after hook.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from crudhooks.core.types import AsyncHook, HookContext, HookType, Method
from crudhooks.core.utils import (
    async_traverse,
    clone,
    is_empty,
    is_object,
    maybe_await,
    pick,
    traverse,
)

logger = logging.getLogger(__name__)

JOIN_SORT_STATE = "join_sort"
PAGING_KEYS = ("$limit", "$skip")


def _identity_key(key: Any) -> Any:
    return key


def _identity_params(
    default_params: dict[str, Any], context: HookContext, option: "JoinOption"
) -> dict[str, Any]:
    return default_params


@dataclass
class JoinOption:
    """One virtual relation.

    Attributes:
        service: Registry path of the related service
        foreign_key: Field on the queried service holding the related key
        target_key: Field on the related service the foreign key points at
        overwrite: Assign the $in constraint directly instead of AND-ing it
            with any existing constraint on foreign_key
        make_key: Normalizes keys before comparing/deduplicating them
        make_params: (default_params, context, option) -> params for the
            related find; may be async
    """

    service: str
    foreign_key: str
    target_key: str
    overwrite: bool = False
    make_key: Callable[[Any], Any] = _identity_key
    make_params: Callable[
        [dict[str, Any], HookContext, "JoinOption"],
        dict[str, Any] | Awaitable[dict[str, Any]],
    ] = _identity_params

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JoinOption":
        """Create JoinOption from a YAML/JSON dict."""
        option = cls(
            service=data["service"],
            foreign_key=data["foreign_key"],
            target_key=data["target_key"],
            overwrite=bool(data.get("overwrite", False)),
        )
        if data.get("make_key"):
            option.make_key = data["make_key"]
        if data.get("make_params"):
            option.make_params = data["make_params"]
        return option


JoinOptions = dict[str, JoinOption]


def make_options(options: Mapping[str, JoinOption | dict[str, Any]]) -> JoinOptions:
    return {
        name: option if isinstance(option, JoinOption) else JoinOption.from_dict(option)
        for name, option in options.items()
    }


def join_query(options: Mapping[str, JoinOption | dict[str, Any]]) -> AsyncHook:
    join_options = make_options(options)

    async def hook(context: HookContext) -> HookContext:
        if context.type == HookType.BEFORE:
            return await _before(context, join_options)
        if context.type == HookType.AFTER:
            return await _after(context, join_options)
        return context

    return hook


async def _before(context: HookContext, options: JoinOptions) -> HookContext:
    if not has_join_query(context.params.get("query"), options):
        return context

    query, join_sort = clean_join_query_sort(clone(context.params["query"]), options)

    if join_sort:
        context.state[JOIN_SORT_STATE] = join_sort

    if join_sort and context.method == Method.FIND:
        context.result = await find_join_query_sort(query, join_sort, context, options)
        return context

    context.params["query"] = await transform_join_query(query, context, options)
    return context


async def _after(context: HookContext, options: JoinOptions) -> HookContext:
    join_sort = context.state.pop(JOIN_SORT_STATE, None)
    if not join_sort:
        return context

    # find was sorted and paginated in the before phase
    if context.method == Method.FIND:
        return context

    if context.method in (Method.GET, Method.UPDATE) or context.id is not None:
        return context

    # single-record create
    if not isinstance(context.result, list):
        return context

    context.result = await mutate_join_query_sort(join_sort, context, options)
    return context


def is_join_query(key: str, options: JoinOptions) -> bool:
    option_key, _ = parse_join_query(key)
    return option_key in options


def parse_join_query(key: str) -> tuple[str, str]:
    """Split "artist.name" into ("artist", "name"); "artist" into ("artist", "")."""
    option_key, _, option_query = key.partition(".")
    return option_key, option_query


def has_join_query(query: dict[str, Any] | None, options: JoinOptions) -> bool:
    if is_empty(query):
        return False

    found = False

    def check(parent: dict[str, Any], key: str, value: Any) -> None:
        nonlocal found
        if is_join_query(key, options):
            found = True

    traverse(query, check)
    return found


def clean_join_query_sort(
    query: dict[str, Any], options: JoinOptions
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Move relation sort keys out of $sort.

    Returns:
        (query without relation sort keys, relation sort keys)
    """
    sort = query.get("$sort")
    if not sort:
        return query, {}

    join_keys = [key for key in sort if is_join_query(key, options)]
    join_sort = pick(sort, *join_keys)
    clean_sort = {key: value for key, value in sort.items() if key not in join_keys}

    clean_query = {key: value for key, value in query.items() if key != "$sort"}
    if clean_sort:
        clean_query["$sort"] = clean_sort

    return clean_query, join_sort


def normalize_join_query(query: dict[str, Any], options: JoinOptions) -> dict[str, Any]:
    """Merge dotted and nested relation predicates into one dict per relation.

    Top-level relation predicates move into $and unless their option has
    overwrite set, so the rewritten constraint cannot clobber one the caller
    already placed on the foreign key.
    """

    def merge(parent: dict[str, Any], key: str, value: Any) -> None:
        if not is_join_query(key, options):
            return

        option_key, option_query = parse_join_query(key)
        existing = parent.get(option_key)
        merged = dict(existing) if is_object(existing) else {}

        if option_query:
            del parent[key]
            merged[option_query] = value
        elif is_object(value):
            merged.update(value)

        parent[option_key] = merged

    traverse(query, merge)

    for root_key, root_value in list(query.items()):
        if not is_join_query(root_key, options):
            continue

        option_key, _ = parse_join_query(root_key)
        if options[option_key].overwrite:
            continue

        del query[root_key]
        query.setdefault("$and", []).append({root_key: root_value})

    return query


async def transform_join_query(
    query: dict[str, Any], context: HookContext, options: JoinOptions
) -> dict[str, Any]:
    """Replace every relation predicate with a {foreign_key: {"$in": keys}} constraint."""
    normalized = normalize_join_query(query, options)

    async def replace(parent: dict[str, Any], key: str, value: Any) -> None:
        if not is_join_query(key, options):
            return

        parent.pop(key, None)
        option = options[key]

        default_params = {
            "paginate": False,
            "query": {"$select": [option.target_key], **(value if is_object(value) else {})},
        }
        params = await maybe_await(option.make_params(default_params, context, option))
        result = await context.app.service(option.service).find(params)

        parent[option.foreign_key] = {"$in": make_foreign_keys(result, option)}

    await async_traverse(normalized, replace)

    logger.debug("Rewrote join query on '%s': %s", context.path, normalized)
    return normalized


async def find_join_query_sort(
    query: dict[str, Any],
    join_sort: dict[str, Any],
    context: HookContext,
    options: JoinOptions,
) -> Any:
    """Fetch every match, order it by the relation sort keys and paginate it."""
    transformed = await transform_join_query(query, context, options)
    main_query = {key: value for key, value in transformed.items() if key not in PAGING_KEYS}

    all_results, *foreign_key_groups = await asyncio.gather(
        context.service.find({"paginate": False, "query": main_query}),
        *foreign_key_requests(join_sort, context, options),
    )

    sorted_results = sort_results(join_sort, options, foreign_key_groups, _records(all_results))
    return paginate_results(context, sorted_results)


async def mutate_join_query_sort(
    join_sort: dict[str, Any], context: HookContext, options: JoinOptions
) -> list[dict[str, Any]]:
    foreign_key_groups = await asyncio.gather(*foreign_key_requests(join_sort, context, options))
    return sort_results(join_sort, options, foreign_key_groups, _records(context.result))


def foreign_key_requests(
    join_sort: dict[str, Any], context: HookContext, options: JoinOptions
) -> list[Awaitable[Any]]:
    """One related find per relation sort key, returning target keys in sorted order."""
    requests = []
    for key, direction in join_sort.items():
        option_key, option_query = parse_join_query(key)
        option = options[option_key]
        requests.append(
            context.app.service(option.service).find(
                {
                    "paginate": False,
                    "query": {
                        "$select": [option.target_key],
                        "$sort": {option_query: direction},
                    },
                }
            )
        )
    return requests


def sort_results(
    join_sort: dict[str, Any],
    options: JoinOptions,
    foreign_key_groups: list[Any],
    results: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Order results by the position of their foreign key in each sorted key list.

    Each relation sort key is applied in turn with a stable sort over the
    order left by the previous one. Records whose key is missing from a list
    rank first, and equal ranks keep their previous relative order.
    """
    sorted_results = list(results)

    for key, foreign_keys in zip(join_sort, foreign_key_groups):
        option = options[parse_join_query(key)[0]]
        ranked_keys = [option.make_key(item.get(option.target_key)) for item in _records(foreign_keys)]
        sorted_results.sort(key=_rank_by(ranked_keys, option))

    return sorted_results


def _rank_by(ranked_keys: list[Any], option: JoinOption) -> Callable[[dict[str, Any]], int]:
    def rank(record: dict[str, Any]) -> int:
        try:
            return ranked_keys.index(option.make_key(record.get(option.foreign_key)))
        except ValueError:
            return -1

    return rank


def paginate_results(context: HookContext, results: list[dict[str, Any]]) -> Any:
    """Apply $skip/$limit the way the service would have.

    The page end points are ``default + 1``, ``max + 1`` and ``limit + 1``
    (absolute indexes, not offsets from skip).
    """
    options = getattr(context.service, "options", None)
    pagination = getattr(options, "paginate", None)
    paginate = context.params.get("paginate")
    query = context.params.get("query") or {}
    has_limit = "$limit" in query
    limit = query.get("$limit")
    skip = query.get("$skip") or 0
    total = len(results)
    page = {"skip": skip, "limit": limit, "total": total}

    if not pagination or paginate is False:
        if not has_limit:
            return results[skip:]
        if limit == -1:
            return []
        return results[skip:skip + limit]

    if not has_limit:
        return {**page, "data": results[skip:pagination.default + 1]}

    if limit == -1:
        return {**page, "data": []}

    if limit > pagination.max:
        return {**page, "data": results[skip:pagination.max + 1]}

    return {**page, "data": results[skip:limit + 1]}


def make_foreign_keys(result: Any, option: JoinOption) -> list[Any]:
    """Distinct, truthy, make_key-normalized target keys in first-seen order."""
    keys: list[Any] = []
    for record in _records(result):
        key = option.make_key(record.get(option.target_key))
        if key and key not in keys:
            keys.append(key)
    return keys


def _records(result: Any) -> list[dict[str, Any]]:
    if is_object(result):
        return result.get("data", [])
    return list(result or [])
