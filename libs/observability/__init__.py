"""Utilities shared across jobs to standardise observability."""

from .logging import JsonLogFormatter, TaskLogger, configure_logging, get_task_logger

__all__ = [
    "JsonLogFormatter",
    "TaskLogger",
    "configure_logging",
    "get_task_logger",
]
