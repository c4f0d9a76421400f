"""Runtime settings sourced from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


ALIAS_PREFIX_ENV = "ADVANCED_CRITERIA_ALIAS_PREFIX"
PARAMETER_PREFIX_ENV = "ADVANCED_CRITERIA_PARAMETER_PREFIX"
MAX_RESULTS_ENV = "ADVANCED_CRITERIA_MAX_RESULTS"


@dataclass(frozen=True)
class Settings:
    alias_prefix: str = "_t"
    parameter_prefix: str = "parameter_"
    max_results: Optional[int] = None


def _parse_max_results(value: str | None) -> Optional[int]:
    """Return the configured result cap, or None when unset."""
    if value is None or not value.strip():
        return None
    try:
        parsed = int(value.strip())
    except ValueError:
        raise ValueError(f"{MAX_RESULTS_ENV} must be an integer, got {value!r}") from None
    if parsed < 0:
        raise ValueError(f"{MAX_RESULTS_ENV} must not be negative, got {parsed}")
    return parsed


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return the cached settings for this process."""
    defaults = Settings()
    return Settings(
        alias_prefix=os.getenv(ALIAS_PREFIX_ENV) or defaults.alias_prefix,
        parameter_prefix=os.getenv(PARAMETER_PREFIX_ENV) or defaults.parameter_prefix,
        max_results=_parse_max_results(os.getenv(MAX_RESULTS_ENV)),
    )


def refresh_settings() -> None:
    """Invalidate cached settings (useful for tests)."""
    get_settings.cache_clear()
