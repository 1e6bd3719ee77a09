"""Dependency-aware property resolver.

A Resolver maps output keys to functions computing their values:

    resolver = Resolver({
        "first": lambda data, ctx, handle: data["name"].split()[0],
        "last": lambda data, ctx, handle: data["name"].split()[-1],
        "full": full_name,
    })

    async def full_name(data, ctx, handle):
        return f"{await handle.resolve('last')}, {await handle.resolve('first')}"

Each key is resolved at most once per resolve() call; a key asked for by
another resolver is started lazily and its result shared. Dependencies are
recorded as edges and checked for cycles every time one is added, so a cycle
fails fast with ConfigurationError instead of deadlocking.

A resolver returning None removes its key from the output record.
"""

import asyncio
import logging
from collections.abc import Callable, Mapping
from graphlib import CycleError, TopologicalSorter
from typing import Any

from crudhooks.core.utils import maybe_await
from crudhooks.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Resolver function signature: (data, context, PropertyResolver) -> value | awaitable
ResolverFn = Callable[[dict[str, Any], Any, "PropertyResolver"], Any]


class PropertyResolver:
    """Handle passed to a resolver function, bound to the key it computes."""

    def __init__(self, resolution: "_Resolution", key: str):
        self._resolution = resolution
        self.key = key

    def resolve(self, key: str) -> "asyncio.Future[Any]":
        """Return an awaitable of another key's value.

        Raises:
            ConfigurationError: If depending on key closes a cycle, or key
                has no resolver
        """
        self._resolution.add_edge(self.key, key)
        return self._resolution.start(key)


class _Resolution:
    """State of resolving a single record."""

    def __init__(
        self,
        resolvers: dict[str, ResolverFn],
        values: dict[str, Any],
        context: Any,
    ):
        self.resolvers = resolvers
        self.values = dict(values)
        self.context = context
        self.result = dict(values)
        self.edges: list[tuple[str, str]] = []
        self.tasks: dict[str, asyncio.Future[Any]] = {}

    def add_edge(self, parent: str, key: str) -> None:
        self.edges.append((parent, key))
        graph: dict[str, set[str]] = {}
        for caller, callee in self.edges:
            graph.setdefault(caller, set()).add(callee)
        try:
            TopologicalSorter(graph).prepare()
        except CycleError as exc:
            cycle = exc.args[1]
            raise ConfigurationError(
                f"Cyclic dependency between resolvers: {' -> '.join(cycle)}",
                data={"cycle": list(cycle)},
            ) from exc

    def start(self, key: str) -> "asyncio.Future[Any]":
        if key not in self.resolvers:
            raise ConfigurationError(f"No resolver is defined for '{key}'")
        if key not in self.tasks:
            self.tasks[key] = asyncio.ensure_future(self._run(key))
        return self.tasks[key]

    async def _run(self, key: str) -> Any:
        fn = self.resolvers[key]
        value = await maybe_await(fn(self.values, self.context, PropertyResolver(self, key)))
        if value is None:
            self.result.pop(key, None)
        else:
            self.result[key] = value
        return value

    async def run(self) -> dict[str, Any]:
        if not self.resolvers:
            return self.result

        try:
            await asyncio.gather(*(self.start(key) for key in self.resolvers))
        except BaseException:
            for task in self.tasks.values():
                task.cancel()
            raise

        return self.result


class Resolver:
    """Resolve a record (or list of records) against a mapping of resolvers.

    Attributes:
        resolvers: Output key -> resolver function, in declaration order
    """

    def __init__(self, resolvers: Mapping[str, ResolverFn]):
        self.resolvers = dict(resolvers)

    async def resolve(self, values: Any, context: Any = None) -> Any:
        """Resolve one record, or every record of a list concurrently.

        Returns:
            A new record (or list of records in input order); the input is
            not mutated.
        """
        if isinstance(values, list):
            return list(
                await asyncio.gather(*(self._resolve_one(item, context) for item in values))
            )
        return await self._resolve_one(values, context)

    async def _resolve_one(self, values: dict[str, Any], context: Any) -> dict[str, Any]:
        logger.debug("Resolving keys %s", list(self.resolvers))
        return await _Resolution(self.resolvers, values, context).run()
