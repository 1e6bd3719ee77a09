"""Runtime settings read from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path

from crudhooks.cache.context_cache_map import DEFAULT_MAX_SIZE
from crudhooks.errors import ConfigurationError

DEFAULT_LOG_LEVEL = "WARNING"


@dataclass
class Settings:
    """crudhooks configuration.

    Attributes:
        config_path: Default application definition file, if any
        cache_max: Entries kept by each service's context cache
        log_level: Level name passed to logging.basicConfig by the CLI
    """

    config_path: Path | None = None
    cache_max: int = DEFAULT_MAX_SIZE
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables.

        - CRUDHOOKS_CONFIG: application definition YAML path
        - CRUDHOOKS_CACHE_MAX: context cache size (default 100)
        - CRUDHOOKS_LOG_LEVEL: log level name (default WARNING)

        Raises:
            ConfigurationError: If CRUDHOOKS_CACHE_MAX is not a positive integer
        """
        config = os.environ.get("CRUDHOOKS_CONFIG")

        raw_cache_max = os.environ.get("CRUDHOOKS_CACHE_MAX")
        cache_max = DEFAULT_MAX_SIZE
        if raw_cache_max:
            try:
                cache_max = int(raw_cache_max)
            except ValueError as exc:
                raise ConfigurationError(
                    f"CRUDHOOKS_CACHE_MAX must be an integer, got '{raw_cache_max}'"
                ) from exc
            if cache_max <= 0:
                raise ConfigurationError("CRUDHOOKS_CACHE_MAX must be positive")

        return cls(
            config_path=Path(config) if config else None,
            cache_max=cache_max,
            log_level=os.environ.get("CRUDHOOKS_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        )
