"""timedtask · Fehler-Hierarchie.

All custom exceptions inherit from TimedTaskError, which carries an
error_code and an optional details dict for programmatic handling.

Usage::

    from timedtask.errors import ConfigError

    raise ConfigError("rate must be >= 0", error_code="CONFIG_INVALID_RATE")
"""

from __future__ import annotations


class TimedTaskError(Exception):
    """Base exception for all timedtask errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "TIMEDTASK_ERROR",
        details: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}


class ConfigError(TimedTaskError):
    """Configuration errors (invalid rate, unknown unit, broken values)."""

    def __init__(
        self,
        message: str,
        error_code: str = "CONFIG_ERROR",
        details: dict | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code, details=details)


class SchedulerError(TimedTaskError):
    """Lifecycle misuse of a TimedTask (self-stop, copying)."""

    def __init__(
        self,
        message: str,
        error_code: str = "SCHEDULER_ERROR",
        details: dict | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code, details=details)
