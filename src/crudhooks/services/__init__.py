"""Service composition: the hooked Application, the in-memory service and paging helpers."""

from crudhooks.services.app import Application, HookedService, HookTable, run_hooks
from crudhooks.services.helpers import count, find_all, find_one, for_each, for_each_page, iter_pages
from crudhooks.services.memory import MemoryService

__all__ = [
    "Application",
    "HookTable",
    "HookedService",
    "MemoryService",
    "count",
    "find_all",
    "find_one",
    "for_each",
    "for_each_page",
    "iter_pages",
    "run_hooks",
]
