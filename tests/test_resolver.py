"""Tests for the dependency-aware property resolver and virtuals serializer."""

import asyncio

import pytest

from crudhooks.core.types import HookContext
from crudhooks.errors import ConfigurationError
from crudhooks.resolvers import (
    Resolver,
    filter_virtual,
    normalize_virtuals,
    resolve_virtual,
    serialize_virtuals,
)


# =============================================================================
# Resolver
# =============================================================================


class TestResolver:
    @pytest.mark.asyncio
    async def test_resolves_sync_and_async_functions(self):
        async def upper(data, context, handle):
            return data["name"].upper()

        resolver = Resolver(
            {
                "first": lambda data, context, handle: data["name"].split()[0],
                "shout": upper,
            }
        )
        result = await resolver.resolve({"name": "Johnny Cash"})
        assert result == {"name": "Johnny Cash", "first": "Johnny", "shout": "JOHNNY CASH"}

    @pytest.mark.asyncio
    async def test_resolves_dependencies(self):
        async def full(data, context, handle):
            return f"{await handle.resolve('last')}, {await handle.resolve('first')}"

        resolver = Resolver(
            {
                "full": full,
                "first": lambda data, context, handle: data["name"].split()[0],
                "last": lambda data, context, handle: data["name"].split()[-1],
            }
        )
        result = await resolver.resolve({"name": "June Carter"})
        assert result["full"] == "Carter, June"

    @pytest.mark.asyncio
    async def test_each_key_runs_once(self):
        calls = []

        async def base(data, context, handle):
            calls.append("base")
            await asyncio.sleep(0)
            return 2

        async def double(data, context, handle):
            return await handle.resolve("base") * 2

        async def triple(data, context, handle):
            return await handle.resolve("base") * 3

        resolver = Resolver({"base": base, "double": double, "triple": triple})
        result = await resolver.resolve({})

        assert result == {"base": 2, "double": 4, "triple": 6}
        assert calls == ["base"]

    @pytest.mark.asyncio
    async def test_none_removes_the_key(self):
        resolver = Resolver({"secret": lambda data, context, handle: None})
        assert await resolver.resolve({"id": 1, "secret": "x"}) == {"id": 1}

    @pytest.mark.asyncio
    async def test_does_not_mutate_input(self):
        values = {"id": 1}
        resolver = Resolver({"extra": lambda data, context, handle: True})
        await resolver.resolve(values)
        assert values == {"id": 1}

    @pytest.mark.asyncio
    async def test_context_is_passed(self):
        context = HookContext(path="api/albums")
        resolver = Resolver({"path": lambda data, ctx, handle: ctx.path})
        assert (await resolver.resolve({}, context))["path"] == "api/albums"

    @pytest.mark.asyncio
    async def test_list_keeps_input_order(self):
        async def slow_for_first(data, context, handle):
            await asyncio.sleep(0.01 if data["id"] == 1 else 0)
            return data["id"] * 10

        resolver = Resolver({"score": slow_for_first})
        result = await resolver.resolve([{"id": 1}, {"id": 2}, {"id": 3}])
        assert [item["score"] for item in result] == [10, 20, 30]

    @pytest.mark.asyncio
    async def test_cycle_raises(self):
        async def a(data, context, handle):
            return await handle.resolve("b")

        async def b(data, context, handle):
            return await handle.resolve("a")

        resolver = Resolver({"a": a, "b": b})
        with pytest.raises(ConfigurationError, match="Cyclic dependency"):
            await resolver.resolve({})

    @pytest.mark.asyncio
    async def test_self_dependency_raises(self):
        async def a(data, context, handle):
            return await handle.resolve("a")

        with pytest.raises(ConfigurationError, match="Cyclic dependency"):
            await Resolver({"a": a}).resolve({})

    @pytest.mark.asyncio
    async def test_unknown_key_raises(self):
        async def a(data, context, handle):
            return await handle.resolve("missing")

        with pytest.raises(ConfigurationError, match="No resolver"):
            await Resolver({"a": a}).resolve({})

    @pytest.mark.asyncio
    async def test_resolver_error_propagates(self):
        def broken(data, context, handle):
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await Resolver({"ok": lambda d, c, h: 1, "broken": broken}).resolve({})


# =============================================================================
# Virtuals
# =============================================================================


class TestVirtuals:
    def test_normalize_wraps_literals_and_strips_marker(self):
        virtuals = normalize_virtuals({"@first": 1, "second": lambda i, c, p: 2})
        assert [(v.key, v.ordered) for v in virtuals] == [("first", True), ("second", False)]
        assert virtuals[0].fn({}, None, None) == 1

    @pytest.mark.asyncio
    async def test_ordered_virtuals_run_first(self):
        order = []

        async def later(item, context, prep):
            order.append("later")
            return item["base"] + 1

        def base(item, context, prep):
            order.append("base")
            return 1

        virtuals = normalize_virtuals({"later": later, "@base": base})
        result = await serialize_virtuals(resolve_virtual, {"id": 1}, virtuals, HookContext())

        assert result == {"id": 1, "base": 1, "later": 2}
        assert order == ["base", "later"]

    @pytest.mark.asyncio
    async def test_prep_runs_once(self):
        calls = []

        async def prep(context):
            calls.append(1)
            return "prepared"

        virtuals = normalize_virtuals({"prep": lambda item, context, prep_result: prep_result})
        result = await serialize_virtuals(
            resolve_virtual, [{"id": 1}, {"id": 2}], virtuals, HookContext(), prep
        )

        assert result == [{"id": 1, "prep": "prepared"}, {"id": 2, "prep": "prepared"}]
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_filter_mode_drops_falsy(self):
        virtuals = normalize_virtuals(
            {"secret": lambda item, context, prep: False, "name": lambda item, context, prep: True}
        )
        result = await serialize_virtuals(
            filter_virtual, {"secret": "x", "name": "y"}, virtuals, HookContext()
        )
        assert result == {"name": "y"}
