"""Tests for JSON query stringify/parse hooks."""

import json

import pytest

from crudhooks.core.types import HookContext
from crudhooks.errors import GeneralError
from crudhooks.services.app import Application
from crudhooks.hooks.json_query import (
    json_query_client,
    json_query_parse,
    json_query_server,
    json_query_stringify,
)

QUERY = {"id": {"$in": [1, 2]}, "active": True}


class TestStringify:
    @pytest.mark.asyncio
    async def test_overwrites_query(self):
        context = await json_query_stringify()(HookContext(params={"query": dict(QUERY)}))
        assert json.loads(context.params["query"]["json"]) == QUERY
        assert list(context.params["query"]) == ["json"]

    @pytest.mark.asyncio
    async def test_keeps_query_without_overwrite(self):
        hook = json_query_stringify(overwrite=False, prop_name="q")
        context = await hook(HookContext(params={"query": dict(QUERY)}))
        assert context.params["query"]["active"] is True
        assert json.loads(context.params["query"]["q"]) == QUERY

    @pytest.mark.asyncio
    async def test_per_request_override(self):
        context = HookContext(
            params={"query": dict(QUERY), "json_query_stringify": {"prop_name": "raw"}}
        )
        context = await json_query_stringify()(context)
        assert "raw" in context.params["query"]

    @pytest.mark.asyncio
    async def test_no_query(self):
        context = HookContext(params={})
        assert await json_query_stringify()(context) is context

    @pytest.mark.asyncio
    async def test_before_only(self):
        with pytest.raises(GeneralError):
            await json_query_stringify()(HookContext(type="after", params={"query": QUERY}))


class TestParse:
    @pytest.mark.asyncio
    async def test_restores_query(self):
        context = HookContext(params={"query": {"json": json.dumps(QUERY)}})
        context = await json_query_parse()(context)
        assert context.params["query"] == QUERY

    @pytest.mark.asyncio
    async def test_without_overwrite(self):
        context = HookContext(params={"query": {"json": "[1, 2]", "other": 1}})
        context = await json_query_parse(overwrite=False)(context)
        assert context.params["query"] == {"json": [1, 2], "other": 1}

    @pytest.mark.asyncio
    async def test_missing_prop_leaves_query(self):
        context = HookContext(params={"query": {"name": "x"}})
        context = await json_query_parse()(context)
        assert context.params["query"] == {"name": "x"}


class Transport:
    """Raw client service forwarding only the (string-safe) query to a server app."""

    def __init__(self, server, path):
        self.server = server
        self.path = path
        self.sent = []

    async def find(self, params=None):
        self.sent.append(params["query"])
        return await self.server.service(self.path).find({"paginate": False, "query": params["query"]})


class TestInstallers:
    @pytest.mark.asyncio
    async def test_client_and_server_round_trip(self, app):
        json_query_server(app)

        client = Application()
        transport = Transport(app, "api/artists")
        client.use("api/artists", transport)
        json_query_client(client)

        result = await client.service("api/artists").find({"query": {"id": {"$in": [2]}}})

        assert [artist["name"] for artist in result] == ["Patsy Cline"]
        assert transport.sent == [{"json": json.dumps({"id": {"$in": [2]}})}]
