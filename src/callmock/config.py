"""Global configuration for callmock.

This module provides centralized configuration management with support for
environment variables and sensible defaults.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class CallmockConfig(BaseSettings):
    """callmock configuration settings.

    Values can be overridden via environment variables with CALLMOCK_ prefix.
    Example: CALLMOCK_MAX_REPR_LENGTH=200 overrides max_repr_length.
    """

    # Failure messages
    max_repr_length: int = Field(
        default=80,
        ge=8,
        le=4096,
        description="Maximum length of an argument repr in failure messages",
    )

    # Validation
    check_types: bool = Field(
        default=True,
        description="Validate arguments and return values against type hints",
    )

    # Engine
    thread_safe: bool = Field(
        default=False,
        description="Guard declaration lists with a lock for multi-threaded tests",
    )

    model_config = {
        "env_prefix": "CALLMOCK_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_config() -> CallmockConfig:
    """Get cached configuration instance.

    Returns:
        CallmockConfig singleton instance.
    """
    return CallmockConfig()


def reload_config() -> CallmockConfig:
    """Reload configuration (clears cache).

    Returns:
        Fresh CallmockConfig instance.
    """
    get_config.cache_clear()
    return get_config()
