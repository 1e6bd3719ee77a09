"""Named hooks that application definition files can reference.

YAML definitions cannot hold functions, so a definition lists hook names:

    services:
      api/albums:
        hooks:
          before:
            create: [stampCreatedAt]

and the application registers the implementation at startup:

    @hook("stampCreatedAt")
    async def stamp_created_at(context):
        context.data["created_at"] = utcnow()
"""

from collections.abc import Callable, Mapping
from typing import Any

from crudhooks.core.types import Hook
from crudhooks.errors import ConfigurationError


class HookRegistry:
    """Hook functions by the names definition files use for them."""

    _hooks: dict[str, Hook] = {}

    @classmethod
    def register(cls, name: str, hook_fn: Hook) -> None:
        """Register hook_fn under name.

        Registering the same function twice is a no-op, so modules holding
        @hook functions can be imported more than once.

        Raises:
            ConfigurationError: If hook_fn is not callable, or name already
                belongs to a different function
        """
        if not callable(hook_fn):
            raise ConfigurationError(f"Hook '{name}' must be callable, got {type(hook_fn).__name__}")

        existing = cls._hooks.get(name)
        if existing is not None and existing is not hook_fn:
            raise ConfigurationError(f"Hook '{name}' is already registered")
        cls._hooks[name] = hook_fn

    @classmethod
    def get(cls, name: str) -> Hook:
        return cls.resolve([name])[0]

    @classmethod
    def resolve(cls, spec: list[str] | Mapping[str, list[str]]) -> Any:
        """Turn hook names, or hook names by method, into hook functions.

        Every unknown name is reported at once.

        Raises:
            ConfigurationError: If any name is not registered; data lists the
                missing names
        """
        names = [name for group in spec.values() for name in group] if isinstance(spec, Mapping) else spec
        missing = sorted({name for name in names if name not in cls._hooks})
        if missing:
            raise ConfigurationError(
                f"Hook(s) {', '.join(repr(name) for name in missing)} not registered. "
                "Register hooks before the application definition is loaded.",
                data={"missing": missing, "registered": cls.names()},
            )

        if isinstance(spec, Mapping):
            return {method: [cls._hooks[name] for name in group] for method, group in spec.items()}
        return [cls._hooks[name] for name in spec]

    @classmethod
    def names(cls) -> list[str]:
        return sorted(cls._hooks)

    @classmethod
    def clear(cls) -> None:
        cls._hooks.clear()


def hook(name: str) -> Callable[[Hook], Hook]:
    """Decorator registering a hook function under name."""

    def decorator(fn: Hook) -> Hook:
        HookRegistry.register(name, fn)
        return fn

    return decorator
