"""Build an Application from a YAML application definition.

Example definition:

    name: music
    services:
      api/artists:
        store:
          - {id: 1, name: Johnny Cash}
      api/albums:
        paginate: {default: 10, max: 50}
        multi: true
        store:
          - {id: 1, title: Man in Black, artist_id: 1}
        joins:
          artist: {service: api/artists, foreign_key: artist_id, target_key: id}
        cache: true
        sanitize: {SECRET: "*****"}
        with_result: {kind: album}
        hooks:
          before:
            create: [stampCreatedAt]

Every service is a MemoryService. Interceptors declared by key are composed
in a fixed order; hooks listed under ``hooks`` are looked up in the
HookRegistry and run after them.
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from crudhooks.cache.context_cache_map import ContextCacheMap
from crudhooks.config.settings import Settings
from crudhooks.config.validator import load_app_file, validate_app
from crudhooks.core.types import Hook, ServiceOptions
from crudhooks.errors import ConfigurationError
from crudhooks.hooks.context_cache import context_cache
from crudhooks.hooks.join_query import JoinOption, join_query
from crudhooks.hooks.rate_limit import MemoryRateLimiter, rate_limit
from crudhooks.hooks.registry import HookRegistry
from crudhooks.hooks.sanitize import sanitize_error, sanitize_result
from crudhooks.hooks.serializers import with_result, without_result
from crudhooks.services.app import Application
from crudhooks.services.memory import MemoryService

logger = logging.getLogger(__name__)

MAKE_KEYS: dict[str, Callable[[Any], Any]] = {
    "identity": lambda key: key,
    "str": str,
    "int": int,
}


def _join_option(data: dict[str, Any]) -> JoinOption:
    option = JoinOption.from_dict({key: value for key, value in data.items() if key != "make_key"})
    option.make_key = MAKE_KEYS[data.get("make_key", "identity")]
    return option


def _service_hooks(definition: dict[str, Any], settings: Settings) -> dict[str, list[Hook]]:
    before: list[Hook] = []
    after: list[Hook] = []
    error: list[Hook] = []

    if definition.get("rate_limit"):
        limit = definition["rate_limit"]
        before.append(rate_limit(MemoryRateLimiter(limit["points"], limit["duration"])))

    if definition.get("joins"):
        joins = join_query({name: _join_option(option) for name, option in definition["joins"].items()})
        before.append(joins)
        after.append(joins)

    cache = definition.get("cache")
    if cache:
        max_size = cache.get("max_size", settings.cache_max) if isinstance(cache, dict) else settings.cache_max
        cached = context_cache(ContextCacheMap(max_size=max_size))
        before.append(cached)
        after.append(cached)

    if definition.get("with_result"):
        after.append(with_result(definition["with_result"]))

    if definition.get("without_result"):
        after.append(without_result(list(definition["without_result"])))

    if definition.get("sanitize"):
        after.append(sanitize_result(definition["sanitize"]))
        error.append(sanitize_error(definition["sanitize"]))

    return {"before": before, "after": after, "error": error}


def build_application(doc: dict[str, Any], settings: Settings | None = None) -> Application:
    """Compose an Application from a validated definition."""
    settings = settings or Settings()
    app = Application()

    if doc.get("hooks"):
        app.hooks(**{phase: HookRegistry.resolve(spec) for phase, spec in doc["hooks"].items()})

    for path, definition in doc["services"].items():
        definition = definition or {}
        options = ServiceOptions.from_dict(definition)
        service = app.use(path, MemoryService(definition.get("store") or [], options))
        service.hooks(**_service_hooks(definition, settings))

        if definition.get("hooks"):
            service.hooks(
                **{phase: HookRegistry.resolve(spec) for phase, spec in definition["hooks"].items()}
            )

        logger.debug("Configured service '%s'", path)

    return app


def load_application(path: Path, settings: Settings | None = None) -> Application:
    """Validate and build the application defined in a YAML file.

    Raises:
        ConfigurationError: If the file cannot be parsed, does not match the
            schema, or references unregistered hooks; data holds the issue
            strings
    """
    doc, issues = load_app_file(path)
    if not issues:
        issues = validate_app(doc, path)

    if issues:
        for issue in issues:
            logger.warning("%s", issue)
        raise ConfigurationError(
            f"Invalid application definition {path}",
            data=[str(issue) for issue in issues],
        )

    return build_application(doc, settings)
