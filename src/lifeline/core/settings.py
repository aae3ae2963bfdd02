"""Process-wide settings for lifeline.

Configuration is limited to a handful of knobs: log output, which timer
backend ``create_timer_backend()`` builds by default, and how the poll
coordinator decides between live polling and test-control mode.

Fields
──────
log_level     : Structlog log level
log_format    : ``console`` or ``json``
poll_mode     : ``auto`` (test-control under pytest, live otherwise),
                ``live`` or ``test``
timer_backend : ``asyncio`` or ``manual``

All values can be overridden via ``LIFELINE_``-prefixed environment variables
or a ``.env`` file.

Examples:
    >>> import os
    >>> os.environ["LIFELINE_POLL_MODE"] = "live"
    >>> get_settings.cache_clear()
    >>> get_settings().poll_mode
    'live'
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LifelineSettings(BaseSettings):
    """Settings shared by every lifeline component."""

    model_config = SettingsConfigDict(
        env_prefix="LIFELINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Log level")
    log_format: Literal["console", "json"] = Field(default="console", description="Log renderer")

    # ── Scheduling ───────────────────────────────────────────────
    poll_mode: Literal["auto", "live", "test"] = Field(
        default="auto",
        description="How poll tasks decide between live polling and test-control mode",
    )
    timer_backend: Literal["asyncio", "manual"] = Field(
        default="asyncio",
        description="Default timer backend built by create_timer_backend()",
    )


@lru_cache(maxsize=1)
def get_settings() -> LifelineSettings:
    """Cached settings, loaded once per process."""
    return LifelineSettings()


__all__ = ["LifelineSettings", "get_settings"]
