"""crudhooks CLI entry point: validate and query application definitions."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import click

from crudhooks.config.loader import load_application
from crudhooks.config.settings import Settings
from crudhooks.config.validator import validate_app_file
from crudhooks.errors import HookError
from crudhooks.services.helpers import count as count_records


def _parse_query(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        query = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"not valid JSON: {exc}", param_hint="--query") from exc
    if not isinstance(query, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--query")
    return query


def _run(settings: Settings, file: Path, service: str, call: Any) -> None:
    """Load the application, run call(service) and print its result as JSON."""
    try:
        app = load_application(file, settings)
        result = asyncio.run(call(app.service(service)))
    except HookError as exc:
        click.echo(click.style(json.dumps(exc.to_dict(), default=str), fg="red"), err=True)
        raise SystemExit(1)
    click.echo(json.dumps(result, indent=2, default=str))


@click.group()
@click.pass_context
def cli(ctx: click.Context):
    """crudhooks: hook pipelines over CRUD services."""
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level)
    ctx.obj = settings


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def validate(file: Path):
    """Validate an application definition against its JSON Schema."""
    issues = validate_app_file(file)
    errors = [i for i in issues if i.severity == "error"]

    for issue in issues:
        colour = "red" if issue.severity == "error" else "yellow"
        click.echo(click.style(str(issue), fg=colour))

    if errors:
        click.echo(click.style(f"\n{len(errors)} error(s) found", fg="red", bold=True))
        raise SystemExit(1)

    click.echo(click.style(f"{file} is valid", fg="green"))


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("service")
@click.option("--query", "raw_query", default=None, help="Query as a JSON object.")
@click.option("--no-paginate", is_flag=True, default=False, help="Return a plain list.")
@click.pass_obj
def find(settings: Settings, file: Path, service: str, raw_query: str | None, no_paginate: bool):
    """Run find on SERVICE and print the result."""
    params: dict[str, Any] = {"query": _parse_query(raw_query)}
    if no_paginate:
        params["paginate"] = False
    _run(settings, file, service, lambda svc: svc.find(params))


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("service")
@click.argument("id")
@click.option("--query", "raw_query", default=None, help="Query as a JSON object.")
@click.pass_obj
def get(settings: Settings, file: Path, service: str, id: str, raw_query: str | None):
    """Run get on SERVICE for ID and print the record."""
    params = {"query": _parse_query(raw_query)}
    _run(settings, file, service, lambda svc: svc.get(id, params))


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("service")
@click.option("--query", "raw_query", default=None, help="Query as a JSON object.")
@click.pass_obj
def count(settings: Settings, file: Path, service: str, raw_query: str | None):
    """Count the records of SERVICE matching --query."""
    params = {"query": _parse_query(raw_query)}
    _run(settings, file, service, lambda svc: count_records(svc, params))
