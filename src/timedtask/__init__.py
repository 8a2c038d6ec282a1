"""timedtask · Selbstkorrigierender periodischer Task-Runner."""

from __future__ import annotations

from timedtask.config import LoggingConfig, TimedTaskConfig, load_config
from timedtask.errors import ConfigError, SchedulerError, TimedTaskError
from timedtask.report import ConsoleReporter, format_report
from timedtask.scheduler import SchedulerState, TimedTask, compute_sleep_ns
from timedtask.statistics import StatisticsCollector, TimingSummary
from timedtask.units import TimeUnit, period_ns

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "ConsoleReporter",
    "LoggingConfig",
    "SchedulerError",
    "SchedulerState",
    "StatisticsCollector",
    "TimeUnit",
    "TimedTask",
    "TimedTaskConfig",
    "TimedTaskError",
    "TimingSummary",
    "__version__",
    "compute_sleep_ns",
    "format_report",
    "load_config",
    "period_ns",
]
