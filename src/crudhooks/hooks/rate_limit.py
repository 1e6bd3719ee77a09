"""Rate limiting of service calls.

rate_limit() consumes points from a limiter before every call it guards:

    limiter = MemoryRateLimiter(points=10, duration=1.0)
    app.service("api/albums").hooks(before={"find": [rate_limit(limiter)]})

The limiter response is stored on params["rate_limit"] so later hooks (or a
transport layer) can expose remaining points to the client.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any

from cachetools import TTLCache

from crudhooks.core.guards import check_context
from crudhooks.core.types import AsyncHook, HookContext, HookType
from crudhooks.core.utils import maybe_await
from crudhooks.errors import TooManyRequests

logger = logging.getLogger(__name__)

PARAM_KEY = "rate_limit"
DEFAULT_MAX_KEYS = 10_000


@dataclass
class RateLimitResult:
    """Limiter state after a consume() call.

    Attributes:
        remaining_points: Points left in the current window
        consumed_points: Points consumed in the current window
        ms_before_next: Milliseconds until the window resets
    """

    remaining_points: int
    consumed_points: int
    ms_before_next: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class RateLimitExceeded(Exception):
    """Raised by a limiter when a consume() would go over its points."""

    def __init__(self, result: RateLimitResult):
        super().__init__(f"Rate limit exceeded, retry in {result.ms_before_next} ms")
        self.result = result


@dataclass
class _Window:
    started: float
    consumed: int = 0


class MemoryRateLimiter:
    """Fixed-window limiter held in process memory.

    Each key gets `points` per `duration` seconds. Windows expire from a
    cachetools.TTLCache, so idle keys do not accumulate.
    """

    def __init__(
        self,
        points: int,
        duration: float,
        max_keys: int = DEFAULT_MAX_KEYS,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.points = points
        self.duration = duration
        self.timer = timer
        self._windows: TTLCache = TTLCache(maxsize=max_keys, ttl=duration, timer=timer)

    async def consume(self, key: str, points: int = 1) -> RateLimitResult:
        """Consume points for key.

        Raises:
            RateLimitExceeded: If the window has fewer than `points` left
        """
        now = self.timer()
        window = self._windows.get(key)
        if window is None:
            window = _Window(started=now)
            self._windows[key] = window

        ms_before_next = max(0, int((window.started + self.duration - now) * 1000))

        if window.consumed + points > self.points:
            raise RateLimitExceeded(
                RateLimitResult(
                    remaining_points=max(0, self.points - window.consumed),
                    consumed_points=window.consumed,
                    ms_before_next=ms_before_next,
                )
            )

        window.consumed += points
        return RateLimitResult(
            remaining_points=self.points - window.consumed,
            consumed_points=window.consumed,
            ms_before_next=ms_before_next,
        )


def _default_key(context: HookContext) -> str:
    return context.path


def _default_points(context: HookContext) -> int:
    return 1


def rate_limit(
    limiter: Any,
    make_key: Callable[[HookContext], Any] = _default_key,
    make_points: Callable[[HookContext], Any] = _default_points,
) -> AsyncHook:
    """Before hook consuming points from limiter.

    Args:
        limiter: Object with an async consume(key, points) raising
            RateLimitExceeded; MemoryRateLimiter by default
        make_key: Key of the window to consume from; the service path by default
        make_points: Points a call costs; 1 by default

    Raises:
        TooManyRequests: When the limiter rejects the call, with the limiter
            response as data
    """

    async def hook(context: HookContext) -> HookContext:
        check_context(context, HookType.BEFORE, label="rate_limit")

        key = await maybe_await(make_key(context))
        points = await maybe_await(make_points(context))

        try:
            result = await limiter.consume(key, points)
        except RateLimitExceeded as exc:
            logger.info("Rate limit exceeded for '%s'", key)
            context.params[PARAM_KEY] = exc.result
            raise TooManyRequests(str(exc), data=exc.result.to_dict()) from exc

        context.params[PARAM_KEY] = result
        return context

    return hook
