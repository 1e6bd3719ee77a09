"""Cache of find/get results keyed by the request that produced them.

Keys are the canonical JSON of {method, id, query}, so two queries that only
differ in key order share an entry. Writes invalidate:
- every cached find (any write may change any filtered view)
- cached gets whose id matches a written record, unless the write was a create

There is no locking. A read racing a write on the same record may serve or
re-cache a stale value; the cache is best effort, not a consistency layer.
"""

import json
import logging
from collections.abc import MutableMapping
from typing import Any

from cachetools import LRUCache

from crudhooks.core.types import HookContext, Method
from crudhooks.core.utils import stable_stringify

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 100


class ContextCacheMap:
    """LRU-backed map from a request signature to a cloned result.

    Attributes:
        map: Backing store; any mutable mapping with str keys. Defaults to a
            cachetools.LRUCache holding max_size entries.
    """

    def __init__(
        self,
        map: MutableMapping[str, Any] | None = None,
        max_size: int = DEFAULT_MAX_SIZE,
    ):
        self.map = map if map is not None else LRUCache(maxsize=max_size)

    def make_cache_key(self, context: HookContext) -> str:
        """Serialize {method, id, query} with sorted keys.

        Raises:
            TypeError: If the query holds a function or another value that
                cannot be serialized
        """
        return stable_stringify(
            {
                "method": context.method,
                "id": context.id,
                "query": context.params.get("query"),
            }
        )

    def make_id(self, id: Any) -> str:
        return str(id)

    def make_result_id(self, record: dict[str, Any]) -> str:
        id = record.get("_id")
        if id is None:
            id = record.get("id")
        return self.make_id(id)

    def clone_result(self, result: Any) -> Any:
        return json.loads(json.dumps(result, default=str))

    async def get(self, context: HookContext) -> Any:
        """Called before get() and find(); None on a miss."""
        key = self.make_cache_key(context)
        value = self.map.get(key)
        if value is None:
            return None
        logger.debug("Cache hit for %s", key)
        return self.clone_result(value)

    async def set(self, context: HookContext) -> None:
        """Called after get() and find()."""
        key = self.make_cache_key(context)
        self.map[key] = self.clone_result(context.result)

    async def clear(self, context: HookContext) -> None:
        """Called after create(), update(), patch() and remove()."""
        result = context.result
        records = result if isinstance(result, list) else [result]

        for record in records:
            for key in list(self.map.keys()):
                entry = json.loads(key)
                if entry["method"] == Method.FIND:
                    self._delete(key)
                    continue

                if context.method == Method.CREATE or not isinstance(record, dict):
                    continue

                if self.make_id(entry["id"]) == self.make_result_id(record):
                    self._delete(key)

    def _delete(self, key: str) -> None:
        if self.map.pop(key, None) is not None:
            logger.debug("Cache invalidated %s", key)
