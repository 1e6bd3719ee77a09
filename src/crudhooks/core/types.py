"""Core types for the crudhooks interceptor pipeline.

Defines the structures every interceptor works with:
- Method / HookType: the service method and lifecycle phase being run
- Paginate / ServiceOptions: service configuration read by interceptors
- HookContext: mutable per-operation record passed through the pipeline
- Service: protocol for the find/get/create/update/patch/remove capability
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class Method(str, Enum):
    """Standard service methods. Custom methods are plain strings."""

    FIND = "find"
    GET = "get"
    CREATE = "create"
    UPDATE = "update"
    PATCH = "patch"
    REMOVE = "remove"


STANDARD_METHODS = tuple(m.value for m in Method)
WRITE_METHODS = (Method.CREATE, Method.UPDATE, Method.PATCH, Method.REMOVE)


class HookType(str, Enum):
    """Lifecycle phase an interceptor runs in."""

    BEFORE = "before"
    AFTER = "after"
    ERROR = "error"


@dataclass(frozen=True)
class Paginate:
    """Service page-size configuration.

    Attributes:
        default: Page size when the caller passes no $limit
        max: Page-size ceiling
    """

    default: int = 10
    max: int = 100

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Paginate | None":
        """Create Paginate from a YAML/JSON dict. False/None disables paging."""
        if not data:
            return None
        default = data.get("default", 10)
        return cls(default=default, max=data.get("max", default))


@dataclass
class ServiceOptions:
    """Options of a service that interceptors may read.

    Attributes:
        paginate: Page-size configuration, or None when the service never pages
        multi: Allow multi-record create/patch/remove
        id_field: Name of the primary key field
    """

    paginate: Paginate | None = None
    multi: bool = False
    id_field: str = "id"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ServiceOptions":
        return cls(
            paginate=Paginate.from_dict(data.get("paginate")),
            multi=bool(data.get("multi", False)),
            id_field=data.get("id_field", "id"),
        )


@dataclass
class HookContext:
    """Runtime context passed to every interceptor.

    Attributes:
        app: The owning Application (service registry)
        service: The service the method was called on
        path: Registry path of the service (e.g. "api/albums")
        method: Service method name (standard or custom)
        type: Current lifecycle phase
        id: Resource id, None for find and multi-record calls
        data: Write payload (a dict, or a list for multi create)
        params: Call parameters; params["query"] holds the query DSL
        result: Response payload; setting it in a before hook skips the call
        error: Exception being handled in the error phase
        state: Scratch space shared by one interceptor across phases
    """

    app: Any = None
    service: Any = None
    path: str = ""
    method: str = Method.FIND.value
    type: str = HookType.BEFORE.value
    id: Any = None
    data: Any = None
    params: dict[str, Any] = field(default_factory=dict)
    result: Any = None
    error: BaseException | None = None
    state: dict[str, Any] = field(default_factory=dict)

    @property
    def query(self) -> dict[str, Any]:
        """The query dict, created empty on first access."""
        return self.params.setdefault("query", {})


# Interceptor signature: (HookContext) -> HookContext | None, sync or async
Hook = Callable[[HookContext], Any]
AsyncHook = Callable[[HookContext], Awaitable[HookContext | None]]


@runtime_checkable
class Service(Protocol):
    """The read/write capability interceptors consume.

    find() returns a list when pagination is disabled (for the service or via
    params["paginate"] = False), else a {"total", "limit", "skip", "data"}
    envelope. Single-record methods raise NotFound when the id (restricted by
    params["query"]) matches nothing.
    """

    options: ServiceOptions

    async def find(self, params: dict[str, Any] | None = None) -> Any: ...

    async def get(self, id: Any, params: dict[str, Any] | None = None) -> Any: ...

    async def create(self, data: Any, params: dict[str, Any] | None = None) -> Any: ...

    async def update(
        self, id: Any, data: Any, params: dict[str, Any] | None = None
    ) -> Any: ...

    async def patch(
        self, id: Any, data: Any, params: dict[str, Any] | None = None
    ) -> Any: ...

    async def remove(self, id: Any, params: dict[str, Any] | None = None) -> Any: ...
