"""Convenience calls over any service: counting, single lookups and paging loops.

All helpers accept a raw or hooked service and regular params. Paging loops
honour $limit and $skip in params["query"] and walk the service page by page
at its configured max page size.
"""

import asyncio
from collections.abc import AsyncIterator, Callable
from typing import Any

from crudhooks.core.utils import maybe_await


def _page_size(service: Any) -> int | None:
    pagination = getattr(getattr(service, "options", None), "paginate", None)
    return pagination.max if pagination else None


async def _fetch_page(service: Any, params: dict[str, Any], skip: int, limit: int) -> dict[str, Any]:
    query = {**(params.get("query") or {}), "$limit": limit, "$skip": skip}
    return await service.find({**params, "paginate": True, "query": query})


async def count(service: Any, params: dict[str, Any] | None = None) -> int:
    """Total number of records matching params["query"], fetching none of them."""
    params = params or {}
    query = {**(params.get("query") or {}), "$limit": 0}
    result = await service.find({**params, "paginate": True, "query": query})
    return result["total"]


async def find_one(service: Any, params: dict[str, Any] | None = None) -> dict[str, Any] | None:
    """First record matching params["query"], or None."""
    params = params or {}
    query = {**(params.get("query") or {}), "$limit": 1}
    result = await service.find({**params, "paginate": False, "query": query})
    return result[0] if result else None


async def iter_pages(
    service: Any, params: dict[str, Any] | None = None
) -> AsyncIterator[tuple[list[dict[str, Any]], int]]:
    """Yield (records, total) for each page of the matching records.

    A service without pagination is fetched in a single call.
    """
    params = params or {}
    page_size = _page_size(service)

    if page_size is None:
        records = await service.find({**params, "paginate": False})
        yield records, len(records)
        return

    query = params.get("query") or {}
    limit = query.get("$limit")
    skip = int(query.get("$skip") or 0)
    if limit is not None and 0 <= int(limit) < page_size:
        page_size = int(limit)

    fetched = 0
    wanted: int | None = None
    while wanted is None or fetched < wanted:
        size = page_size if wanted is None else min(page_size, wanted - fetched)
        page = await _fetch_page(service, params, skip + fetched, size)
        total = page["total"]
        if wanted is None:
            available = max(0, total - skip)
            wanted = available if limit is None else min(int(limit), available)

        data = page["data"]
        if not data:
            break
        fetched += len(data)
        yield data, total


async def find_all(
    service: Any, params: dict[str, Any] | None = None, concurrent: bool = False
) -> list[dict[str, Any]]:
    """Every record matching params["query"] as one list, paging as needed.

    With concurrent=True, pages after the first are fetched at once.
    """
    params = params or {}
    if not concurrent or _page_size(service) is None:
        records: list[dict[str, Any]] = []
        async for data, _ in iter_pages(service, params):
            records.extend(data)
        return records

    query = params.get("query") or {}
    limit = query.get("$limit")
    skip = int(query.get("$skip") or 0)
    page_size = _page_size(service)
    if limit is not None and 0 <= int(limit) < page_size:
        page_size = int(limit)

    first = await _fetch_page(service, params, skip, page_size)
    records = list(first["data"])
    available = max(0, first["total"] - skip)
    wanted = available if limit is None else min(int(limit), available)
    step = len(records)
    if not step or step >= wanted:
        return records[:wanted]

    pages = await asyncio.gather(
        *(
            _fetch_page(service, params, skip + offset, min(step, wanted - offset))
            for offset in range(step, wanted, step)
        )
    )
    for page in pages:
        records.extend(page["data"])
    return records


async def for_each(
    service: Any,
    callback: Callable[[dict[str, Any], int, int], Any],
    params: dict[str, Any] | None = None,
) -> None:
    """Call callback(record, index, total) for every matching record, in order."""
    index = 0
    async for data, total in iter_pages(service, params):
        for record in data:
            await maybe_await(callback(record, index, total))
            index += 1


async def for_each_page(
    service: Any,
    callback: Callable[[list[dict[str, Any]], int, int], Any],
    params: dict[str, Any] | None = None,
) -> None:
    """Call callback(records, page_index, total) for every page."""
    page_index = 0
    async for data, total in iter_pages(service, params):
        await maybe_await(callback(data, page_index, total))
        page_index += 1
