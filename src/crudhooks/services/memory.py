"""In-memory service implementing the full find/get/create/update/patch/remove surface.

Used as the raw service behind an Application in tests, the CLI and YAML
application definitions. Records are deep-copied in and out, so callers and
hooks can never mutate stored state by accident.
"""

import logging
from typing import Any

from crudhooks.core.types import Paginate, ServiceOptions
from crudhooks.core.utils import clone
from crudhooks.errors import BadRequest, MethodNotAllowed, NotFound
from crudhooks.services.query import filter_query, matches, select_fields, sort_records

logger = logging.getLogger(__name__)


class MemoryService:
    """A collection of dict records keyed by their id field.

    Attributes:
        options: Pagination, multi-write and id field configuration
        store: Records keyed by str(id), in insertion order
    """

    def __init__(
        self,
        store: list[dict[str, Any]] | dict[Any, dict[str, Any]] | None = None,
        options: ServiceOptions | dict[str, Any] | None = None,
    ):
        if isinstance(options, ServiceOptions):
            self.options = options
        else:
            self.options = ServiceOptions.from_dict(options or {})

        self.store: dict[str, dict[str, Any]] = {}
        self._next_id = 1

        records = store.values() if isinstance(store, dict) else (store or [])
        for record in records:
            self._insert(clone(record))

    @property
    def id_field(self) -> str:
        return self.options.id_field

    def _insert(self, record: dict[str, Any]) -> dict[str, Any]:
        id = record.get(self.id_field)
        if id is None:
            id = self._next_id
            record[self.id_field] = id
        if isinstance(id, int) and id >= self._next_id:
            self._next_id = id + 1
        self.store[str(id)] = record
        return record

    def _paginate(self, params: dict[str, Any]) -> Paginate | None:
        override = params.get("paginate")
        if override is False:
            return None
        if isinstance(override, dict):
            return Paginate.from_dict(override)
        if override is True:
            return self.options.paginate or Paginate()
        return self.options.paginate

    def _select(self, record: dict[str, Any], params: dict[str, Any]) -> dict[str, Any]:
        select = (params.get("query") or {}).get("$select")
        return select_fields(clone(record), select, self.id_field)

    def _matching(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        filters, criteria = filter_query(params.get("query"))
        records = [record for record in self.store.values() if matches(record, criteria)]
        return sort_records(records, filters.get("$sort"))

    def _get_record(self, id: Any, params: dict[str, Any]) -> dict[str, Any]:
        _, criteria = filter_query(params.get("query"))
        record = self.store.get(str(id))
        if record is None or not matches(record, criteria):
            raise NotFound(f"No record found for id '{id}'")
        return record

    def _check_multi(self, method: str) -> None:
        if not self.options.multi:
            raise MethodNotAllowed(f"Can not {method} multiple entries")

    async def find(self, params: dict[str, Any] | None = None) -> Any:
        params = params or {}
        filters, _ = filter_query(params.get("query"))
        records = self._matching(params)
        total = len(records)

        paginate = self._paginate(params)
        limit = filters.get("$limit")
        skip = int(filters.get("$skip") or 0)
        if paginate:
            limit = paginate.default if limit is None else min(int(limit), paginate.max)

        if limit is None:
            page = records[skip:]
        elif int(limit) < 0:
            page = []
        else:
            page = records[skip:skip + int(limit)]
        data = [self._select(record, params) for record in page]

        if paginate:
            return {"total": total, "limit": limit, "skip": skip, "data": data}
        return data

    async def get(self, id: Any, params: dict[str, Any] | None = None) -> dict[str, Any]:
        params = params or {}
        return self._select(self._get_record(id, params), params)

    async def create(self, data: Any, params: dict[str, Any] | None = None) -> Any:
        params = params or {}
        if isinstance(data, list):
            self._check_multi("create")
            return [await self.create(item, params) for item in data]

        record = self._insert(clone(data))
        logger.debug("Created record %s", record[self.id_field])
        return self._select(record, params)

    async def update(self, id: Any, data: dict[str, Any], params: dict[str, Any] | None = None) -> dict[str, Any]:
        params = params or {}
        if id is None:
            raise BadRequest("You can not replace multiple instances. Did you mean 'patch'?")

        current = self._get_record(id, params)
        record = {**clone(data), self.id_field: current[self.id_field]}
        self.store[str(current[self.id_field])] = record
        return self._select(record, params)

    async def patch(self, id: Any, data: dict[str, Any], params: dict[str, Any] | None = None) -> Any:
        params = params or {}
        changes = {key: value for key, value in clone(data).items() if key != self.id_field}

        if id is None:
            self._check_multi("patch")
            patched = []
            for record in self._matching(params):
                record.update(clone(changes))
                patched.append(self._select(record, params))
            return patched

        record = self._get_record(id, params)
        record.update(changes)
        return self._select(record, params)

    async def remove(self, id: Any, params: dict[str, Any] | None = None) -> Any:
        params = params or {}

        if id is None:
            self._check_multi("remove")
            removed = []
            for record in self._matching(params):
                del self.store[str(record[self.id_field])]
                removed.append(self._select(record, params))
            return removed

        record = self._get_record(id, params)
        del self.store[str(record[self.id_field])]
        return self._select(record, params)
