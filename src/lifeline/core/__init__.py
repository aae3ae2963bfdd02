"""Lifeline core: errors, logging and settings shared by every component."""

from lifeline.core.errors import (
    ConfigError,
    DuplicateLabelError,
    ErrorCategory,
    ErrorContext,
    InvalidArgumentError,
    InvalidConfigError,
    LifelineError,
    PreconditionError,
    TeardownError,
    UnknownLabelError,
)
from lifeline.core.logging import configure_logging, get_logger
from lifeline.core.settings import LifelineSettings, get_settings

__all__ = [
    "ConfigError",
    "DuplicateLabelError",
    "ErrorCategory",
    "ErrorContext",
    "InvalidArgumentError",
    "InvalidConfigError",
    "LifelineError",
    "PreconditionError",
    "TeardownError",
    "UnknownLabelError",
    "configure_logging",
    "get_logger",
    "LifelineSettings",
    "get_settings",
]
