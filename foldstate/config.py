"""
foldstate configuration — all environment variables in one place.

Read from environment at import time. The kernel itself stays pure;
these only seed defaults.
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("config: ignoring non-integer %s=%r", name, raw)
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Library settings from environment variables."""

    # Visibility level used by reducer.new() when none is given; new() clamps it
    VISIBILITY_LEVEL: int = _env_int("FOLDSTATE_VISIBILITY_LEVEL", 2)

    # Reject file keys without a "section:" prefix instead of trusting the caller
    STRICT_KEYS: bool = _env_bool("FOLDSTATE_STRICT_KEYS")


# Singleton instance
settings = Settings()
