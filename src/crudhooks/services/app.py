"""Explicit interceptor pipelines around services.

An Application is a registry of services by path. Each registered service is
wrapped in a HookedService that runs, for every call:

    app before -> service before -> raw method -> service after -> app after

A before hook that sets context.result skips the raw method. When anything
raises, error hooks (service, then app) run with context.error set; they may
replace the error, or recover by setting context.result. An error leaving the
pipeline carries the context on its ``hook`` attribute.

Hooks are registered per phase as a list (all methods) or a dict keyed by
method name, with "all" running before the method-specific hooks:

    app.use("api/albums", MemoryService(albums))
    app.service("api/albums").hooks(
        before={"all": [rate_limit(limiter)], "find": [join_query(joins)]},
        after=[sanitize_result({"SECRET": "****"})],
    )
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from crudhooks.core.types import Hook, HookContext, HookType, Method, ServiceOptions
from crudhooks.core.utils import maybe_await
from crudhooks.errors import BadRequest

logger = logging.getLogger(__name__)

ALL = "all"

HookSpec = Iterable[Hook] | Mapping[str, Iterable[Hook]]


async def run_hooks(hooks: list[Hook], context: HookContext) -> HookContext:
    """Execute hooks sequentially in declared order.

    A hook may mutate the context in place or return a replacement context.
    """
    for hook in hooks:
        logger.debug(
            "Running %s hook '%s' on %s.%s",
            context.type,
            getattr(hook, "__name__", repr(hook)),
            context.path,
            context.method,
        )
        result = await maybe_await(hook(context))
        if isinstance(result, HookContext):
            context = result
    return context


class HookTable:
    """Hooks of one owner (an app or a service), by phase and method."""

    def __init__(self) -> None:
        self._hooks: dict[str, dict[str, list[Hook]]] = {
            HookType.BEFORE.value: {},
            HookType.AFTER.value: {},
            HookType.ERROR.value: {},
        }

    def register(
        self,
        before: HookSpec | None = None,
        after: HookSpec | None = None,
        error: HookSpec | None = None,
    ) -> None:
        for type, spec in ((HookType.BEFORE, before), (HookType.AFTER, after), (HookType.ERROR, error)):
            if spec is None:
                continue
            by_method = self._hooks[type.value]
            if isinstance(spec, Mapping):
                for method, hooks in spec.items():
                    by_method.setdefault(getattr(method, "value", method), []).extend(hooks)
            else:
                by_method.setdefault(ALL, []).extend(spec)

    def collect(self, type: str, method: str) -> list[Hook]:
        by_method = self._hooks[type]
        return [*by_method.get(ALL, []), *by_method.get(method, [])]


class HookedService:
    """A raw service wrapped in its app's and its own hook pipelines.

    Attributes:
        app: The owning Application
        path: Registry path
        raw: The wrapped service, callable directly to bypass all hooks
    """

    def __init__(self, app: "Application", path: str, service: Any):
        self.app = app
        self.path = path
        self.raw = service
        self._hooks = HookTable()

    @property
    def options(self) -> ServiceOptions:
        return getattr(self.raw, "options", None) or ServiceOptions()

    def hooks(
        self,
        before: HookSpec | None = None,
        after: HookSpec | None = None,
        error: HookSpec | None = None,
    ) -> "HookedService":
        """Append hooks; later registrations run after earlier ones."""
        self._hooks.register(before=before, after=after, error=error)
        return self

    async def find(self, params: dict[str, Any] | None = None) -> Any:
        return await self._call(Method.FIND, params=params)

    async def get(self, id: Any, params: dict[str, Any] | None = None) -> Any:
        return await self._call(Method.GET, id=id, params=params)

    async def create(self, data: Any, params: dict[str, Any] | None = None) -> Any:
        return await self._call(Method.CREATE, data=data, params=params)

    async def update(self, id: Any, data: Any, params: dict[str, Any] | None = None) -> Any:
        return await self._call(Method.UPDATE, id=id, data=data, params=params)

    async def patch(self, id: Any, data: Any, params: dict[str, Any] | None = None) -> Any:
        return await self._call(Method.PATCH, id=id, data=data, params=params)

    async def remove(self, id: Any, params: dict[str, Any] | None = None) -> Any:
        return await self._call(Method.REMOVE, id=id, params=params)

    async def _call(
        self,
        method: Method,
        id: Any = None,
        data: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        context = HookContext(
            app=self.app,
            service=self,
            path=self.path,
            method=method.value,
            type=HookType.BEFORE.value,
            id=id,
            data=data,
            params=dict(params or {}),
        )

        try:
            context = await run_hooks(
                self.app.hook_table.collect(context.type, context.method)
                + self._hooks.collect(context.type, context.method),
                context,
            )

            if context.result is None:
                context.result = await self._dispatch(context)

            context.type = HookType.AFTER.value
            context = await run_hooks(
                self._hooks.collect(context.type, context.method)
                + self.app.hook_table.collect(context.type, context.method),
                context,
            )
        except Exception as exc:
            context = await self._handle_error(context, exc)

        return context.result

    async def _dispatch(self, context: HookContext) -> Any:
        params = context.params
        if context.method == Method.FIND:
            return await self.raw.find(params)
        if context.method == Method.GET:
            return await self.raw.get(context.id, params)
        if context.method == Method.CREATE:
            return await self.raw.create(context.data, params)
        if context.method == Method.UPDATE:
            return await self.raw.update(context.id, context.data, params)
        if context.method == Method.PATCH:
            return await self.raw.patch(context.id, context.data, params)
        return await self.raw.remove(context.id, params)

    async def _handle_error(self, context: HookContext, error: Exception) -> HookContext:
        context.type = HookType.ERROR.value
        context.error = error
        context.result = None

        hooks = self._hooks.collect(context.type, context.method) + self.app.hook_table.collect(
            context.type, context.method
        )
        try:
            context = await run_hooks(hooks, context)
        except Exception as hook_error:
            hook_error.hook = context  # type: ignore[attr-defined]
            raise

        if context.result is not None:
            logger.debug("Error on %s.%s recovered by error hook", context.path, context.method)
            return context

        final = context.error or error
        final.hook = context  # type: ignore[union-attr]
        raise final


class Application:
    """Registry of hooked services plus app-wide hooks."""

    def __init__(self) -> None:
        self.services: dict[str, HookedService] = {}
        self.hook_table = HookTable()

    def use(self, path: str, service: Any, hooks: dict[str, HookSpec] | None = None) -> HookedService:
        """Register a raw service under path and return its hooked wrapper."""
        path = path.strip("/")
        hooked = HookedService(self, path, service)
        if hooks:
            hooked.hooks(**hooks)
        self.services[path] = hooked
        logger.debug("Registered service '%s'", path)
        return hooked

    def service(self, path: str) -> HookedService:
        """Look up a registered service.

        Raises:
            BadRequest: If nothing is registered under path
        """
        path = path.strip("/")
        if path not in self.services:
            raise BadRequest(f"Service '{path}' is not registered")
        return self.services[path]

    def hooks(
        self,
        before: HookSpec | None = None,
        after: HookSpec | None = None,
        error: HookSpec | None = None,
    ) -> "Application":
        """Append app-wide hooks, run around every service's own hooks."""
        self.hook_table.register(before=before, after=after, error=error)
        return self
