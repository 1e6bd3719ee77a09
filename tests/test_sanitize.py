"""Tests for schema-driven redaction and its hooks."""

import pytest

from crudhooks.core.types import HookContext
from crudhooks.errors import GeneralError, NotFound
from crudhooks.hooks.sanitize import sanitize_error, sanitize_result
from crudhooks.sanitize import sanitize
from crudhooks.services.app import Application
from crudhooks.services.memory import MemoryService

SCHEMA = {"SECRET": "*****"}


class TestSanitize:
    def test_replaces_every_occurrence(self):
        assert sanitize("SECRET and SECRET", SCHEMA) == "***** and *****"

    def test_nested_structures(self):
        value = {"token": "abc-SECRET", "items": ["SECRET", {"deep": "x SECRET"}], "ok": True}
        assert sanitize(value, SCHEMA) == {
            "token": "abc-*****",
            "items": ["*****", {"deep": "x *****"}],
            "ok": True,
        }

    def test_numbers(self):
        assert sanitize(12345, {"234": "0"}) == 105
        assert sanitize(1.5, {"5": "x"}) == "1.x"
        assert sanitize(42, SCHEMA) == 42

    def test_function_replacement_called_only_when_present(self):
        calls = []

        def mask(string, key):
            calls.append(key)
            return string.replace(key, "#" * len(key))

        assert sanitize("my pin is 1234", {"1234": mask}) == "my pin is ####"
        assert sanitize("nothing here", {"1234": mask}) == "nothing here"
        assert calls == ["1234"]

    @pytest.mark.parametrize(
        "value",
        [
            "SECRET and SECRET",
            12345,
            1.5,
            {"token": "abc-SECRET", "pin": 12345, "items": [["SECRET"], {"deep": "x SECRET"}]},
        ],
    )
    def test_idempotent(self, value):
        schema = {"SECRET": "*****", "234": "0", "5": "x"}
        once = sanitize(value, schema)
        assert sanitize(once, schema) == once

    def test_unexpected_values_pass_through(self):
        marker = object()
        assert sanitize(marker, SCHEMA) is marker
        assert sanitize(None, SCHEMA) is None

    def test_errors_are_sanitized_in_place(self):
        error = GeneralError("token SECRET leaked", data={"token": "SECRET"})
        error.hook = HookContext(data={"token": "SECRET"})

        result = sanitize(error, SCHEMA)

        assert result is error
        assert str(error) == "token ***** leaked"
        assert error.message == "token ***** leaked"
        assert error.data == {"token": "*****"}
        assert error.hook.data == {"token": "SECRET"}


class TestSanitizeHooks:
    @pytest.mark.asyncio
    async def test_sanitize_result(self):
        context = HookContext(type="after", result={"token": "SECRET"})
        context = await sanitize_result(SCHEMA)(context)
        assert context.result == {"token": "*****"}

    @pytest.mark.asyncio
    async def test_schema_function(self):
        async def schema(context):
            return {context.params["secret"]: "***"}

        context = HookContext(type="after", result="pw hunter2", params={"secret": "hunter2"})
        context = await sanitize_result(schema)(context)
        assert context.result == "pw ***"

    @pytest.mark.asyncio
    async def test_sanitize_error_in_pipeline(self):
        app = Application()
        secrets = app.use("api/secrets", MemoryService([{"id": 1}]))
        secrets.hooks(error=[sanitize_error({"SECRET": "*****"})])

        with pytest.raises(NotFound) as exc_info:
            await secrets.get("SECRET")

        assert exc_info.value.message == "No record found for id '*****'"
        assert exc_info.value.hook.error is exc_info.value
