"""Shared fixtures: a small music catalogue behind an Application."""

import pytest

from crudhooks.core.types import HookContext
from crudhooks.hooks.registry import HookRegistry
from crudhooks.services.app import Application
from crudhooks.services.memory import MemoryService

PAGINATE = {"default": 10, "max": 100}


def albums():
    return [
        {"id": 1, "title": "Man in Black", "artist_id": 1},
        {"id": 2, "title": "I Wont Back Down", "artist_id": 1},
        {"id": 3, "title": "Life in Nashville", "artist_id": 2},
    ]


def artists():
    return [
        {"id": 1, "name": "Johnny Cash"},
        {"id": 2, "name": "Patsy Cline"},
        {"id": 3, "name": "June Carter"},
    ]


def ratings():
    return [
        {"id": 1, "album_id": None, "rating": 5},
        {"id": 2, "album_id": 1, "rating": 5},
        {"id": 3, "album_id": 2, "name": 5},
    ]


@pytest.fixture(autouse=True)
def clear_hook_registry():
    """Clear hook registry before and after each test."""
    HookRegistry.clear()
    yield
    HookRegistry.clear()


@pytest.fixture
def app():
    """Albums, artists and ratings; all paginated and allowing multi writes."""
    application = Application()
    options = {"paginate": PAGINATE, "multi": True}
    application.use("api/albums", MemoryService(albums(), options))
    application.use("api/artists", MemoryService(artists(), options))
    application.use("api/ratings", MemoryService(ratings(), options))
    return application


@pytest.fixture
def make_context(app):
    """Build a HookContext on a service of the app fixture."""

    def _make(path="api/albums", method="find", type="before", **kwargs):
        return HookContext(
            app=app,
            service=app.service(path),
            path=path,
            method=method,
            type=type,
            **kwargs,
        )

    return _make
