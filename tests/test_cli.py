"""Tests for the crudhooks CLI."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from crudhooks.cli.main import cli
from crudhooks.hooks.registry import HookRegistry

FIXTURES = Path(__file__).parent / "fixtures"
MUSIC = str(FIXTURES / "music.yaml")


@pytest.fixture
def runner(monkeypatch):
    for name in ("CRUDHOOKS_CONFIG", "CRUDHOOKS_CACHE_MAX", "CRUDHOOKS_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return CliRunner()


@pytest.fixture
def stamp_source():
    HookRegistry.register("stampSource", lambda context: None)


class TestValidate:
    def test_valid(self, runner):
        result = runner.invoke(cli, ["validate", MUSIC])
        assert result.exit_code == 0
        assert "is valid" in result.output

    def test_invalid(self, runner):
        result = runner.invoke(cli, ["validate", str(FIXTURES / "dangling_join.yaml")])
        assert result.exit_code == 1
        assert "unknown service 'api/artists'" in result.output
        assert "1 error(s) found" in result.output

    def test_missing_file(self, runner):
        result = runner.invoke(cli, ["validate", str(FIXTURES / "missing.yaml")])
        assert result.exit_code == 2


class TestQueries:
    def test_find(self, runner, stamp_source):
        result = runner.invoke(
            cli,
            ["find", MUSIC, "api/albums", "--query", '{"artist.name": "Patsy Cline"}', "--no-paginate"],
        )
        assert result.exit_code == 0, result.output
        records = json.loads(result.output)
        assert [album["title"] for album in records] == ["Life in Nashville"]

    def test_find_paginated(self, runner, stamp_source):
        result = runner.invoke(cli, ["find", MUSIC, "api/artists", "--query", '{"$limit": 1}'])
        assert result.exit_code == 0, result.output
        page = json.loads(result.output)
        assert page["total"] == 3
        assert len(page["data"]) == 1

    def test_get(self, runner, stamp_source):
        result = runner.invoke(cli, ["get", MUSIC, "api/artists", "2"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {"id": 2, "name": "Patsy Cline"}

    def test_count(self, runner, stamp_source):
        result = runner.invoke(cli, ["count", MUSIC, "api/albums", "--query", '{"artist_id": 1}'])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "2"

    def test_not_found(self, runner, stamp_source):
        result = runner.invoke(cli, ["get", MUSIC, "api/artists", "99"])
        assert result.exit_code == 1
        assert "NotFound" in result.output

    def test_unknown_service(self, runner, stamp_source):
        result = runner.invoke(cli, ["find", MUSIC, "api/songs"])
        assert result.exit_code == 1
        assert "api/songs" in result.output

    def test_bad_query(self, runner, stamp_source):
        result = runner.invoke(cli, ["find", MUSIC, "api/albums", "--query", "[1, 2]"])
        assert result.exit_code == 2
        assert "must be a JSON object" in result.output

    def test_unregistered_hook(self, runner):
        result = runner.invoke(cli, ["find", MUSIC, "api/albums"])
        assert result.exit_code == 1
        assert "stampSource" in result.output
