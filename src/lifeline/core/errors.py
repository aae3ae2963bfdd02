"""
Structured error types for lifeline.

Every failure raised by the task registry is a programmer error: an operation
invoked on a destroyed owner, a callback that is not callable, a poll label
registered twice. These are raised synchronously at the call site and are
never retried. Cancellation is the deliberate exception to the rule: canceling
an unknown or already-fired handle is routine and never raises.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                      LifelineError                               │
        │            (category, context, cause)                            │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  PreconditionError      InvalidArgumentError                     │
        │  (LIFECYCLE)            (ARGUMENT)                               │
        │                                                                  │
        │  DuplicateLabelError    UnknownLabelError                        │
        │  (REGISTRATION)         (TEST_CONTROL, also AssertionError)      │
        │                                                                  │
        │  TeardownError          ConfigError                              │
        │  (TEARDOWN)             (CONFIG)                                 │
        │                              │                                   │
        │                         InvalidConfigError                       │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = PreconditionError("Called `run_task` on destroyed object")
    >>> error.category
    <ErrorCategory.LIFECYCLE: 'LIFECYCLE'>

    >>> error = DuplicateLabelError("poller#refresh")
    >>> error.with_context(operation="poll_task").context.operation
    'poll_task'
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and logging."""

    LIFECYCLE = "LIFECYCLE"
    ARGUMENT = "ARGUMENT"
    REGISTRATION = "REGISTRATION"
    TEST_CONTROL = "TEST_CONTROL"
    TEARDOWN = "TEARDOWN"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured context attached to a LifelineError.

    Attributes:
        owner: repr of the owner the operation was invoked on
        operation: registry operation name (e.g. "run_task")
        name: method name for debounce/throttle operations
        label: poll task label
        metadata: additional key-value pairs
    """

    owner: str | None = None
    operation: str | None = None
    name: str | None = None
    label: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return the populated fields only."""
        result = {}
        for key in ["owner", "operation", "name", "label"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class LifelineError(Exception):
    """
    Base exception for all lifeline errors.

    Subclasses set ``default_category`` so callers can route on category
    without matching concrete types.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> LifelineError:
        """
        Attach owner/operation/label context and return self.

        Usage:
            raise PreconditionError("destroyed").with_context(
                owner=repr(owner),
                operation="run_task",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Flatten the error into a dict suitable for a structlog event."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# LIFECYCLE / ARGUMENT ERRORS
# =============================================================================


class PreconditionError(LifelineError):
    """Operation invoked on an owner that is destroyed (or being destroyed)."""

    default_category = ErrorCategory.LIFECYCLE


class InvalidArgumentError(LifelineError):
    """Non-callable action, unresolvable method name, or invalid delay."""

    default_category = ErrorCategory.ARGUMENT


# =============================================================================
# POLL LABEL ERRORS
# =============================================================================


class DuplicateLabelError(LifelineError):
    """A poll label is already registered by a live poll task."""

    default_category = ErrorCategory.REGISTRATION

    def __init__(self, label: str, message: str | None = None):
        self.label = label
        super().__init__(
            message
            or f"The label provided to `poll_task` must be unique. `{label}` has already been registered.",
            context=ErrorContext(label=label),
        )


class UnknownLabelError(LifelineError, AssertionError):
    """
    Test-control advance on a label that is not registered or has nothing queued.

    Also an ``AssertionError`` so test code that expects an assertion failure
    from the test-control helper keeps working.
    """

    default_category = ErrorCategory.TEST_CONTROL

    def __init__(self, label: str, message: str | None = None):
        self.label = label
        super().__init__(
            message or f"A poll task with a label of '{label}' was not found.",
            context=ErrorContext(label=label),
        )


# =============================================================================
# TEARDOWN ERRORS
# =============================================================================


class TeardownError(LifelineError):
    """One or more disposables raised while an owner was being destroyed."""

    default_category = ErrorCategory.TEARDOWN

    def __init__(self, errors: list[BaseException], message: str | None = None, **kwargs: Any):
        self.errors = list(errors)
        super().__init__(
            message or f"{len(self.errors)} disposable(s) failed during destroy",
            cause=self.errors[0] if self.errors else None,
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["errors"] = [repr(e) for e in self.errors]
        return result


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(LifelineError):
    """Configuration error."""

    default_category = ErrorCategory.CONFIG


class InvalidConfigError(ConfigError):
    """A LIFELINE_* setting or backend name was not recognized."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


def categorize_error(error: BaseException) -> ErrorCategory:
    """Map any exception onto an ``ErrorCategory``."""
    if isinstance(error, LifelineError):
        return error.category
    if isinstance(error, (TypeError, ValueError)):
        return ErrorCategory.ARGUMENT
    return ErrorCategory.INTERNAL


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "LifelineError",
    "PreconditionError",
    "InvalidArgumentError",
    "DuplicateLabelError",
    "UnknownLabelError",
    "TeardownError",
    "ConfigError",
    "InvalidConfigError",
    "categorize_error",
]
