"""Structured logging helpers shared by the credentials provider jobs."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - typing only
    from libs.credentials.context import TaskContext

_CONFIGURED_SERVICES: set[str] = set()

TaskLogger = logging.LoggerAdapter


class ServiceNameFilter(logging.Filter):
    """Inject the job name into log records."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self._service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - logging side effect
        record.service = self._service_name
        return True


class JsonLogFormatter(logging.Formatter):
    """Format log records as JSON with a consistent schema."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self._service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "service": getattr(record, "service", self._service_name),
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info

        reserved = _reserved_log_keys()
        for key, value in record.__dict__.items():
            if key in reserved or key in payload:
                continue
            try:
                json.dumps(value)
                payload[key] = value
            except TypeError:
                payload[key] = str(value)
        return json.dumps(payload, default=str)


def _reserved_log_keys() -> set[str]:
    return {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
    }


def configure_logging(service_name: str, *, level: str | None = None) -> None:
    """Configure structured logging on stderr for the current job.

    ``level`` defaults to the ``SM_LOG_LEVEL`` environment variable and then
    to ``INFO``. Calling the function twice for the same job is a no-op.
    """

    if service_name in _CONFIGURED_SERVICES:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonLogFormatter(service_name))
    handler.addFilter(ServiceNameFilter(service_name))

    resolved_level = (level or os.getenv("SM_LOG_LEVEL") or "INFO").upper()
    root_logger = logging.getLogger()
    root_logger.setLevel(resolved_level)
    root_logger.handlers = [handler]

    # httpx logs every request at INFO, including the token endpoint URL.
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _CONFIGURED_SERVICES.add(service_name)


def get_task_logger(service_name: str, context: "TaskContext | None" = None) -> TaskLogger:
    """Return the logger passed through one job run.

    Every record emitted through the adapter carries the secret task id and
    the requested action so that log lines of concurrent runs can be told
    apart.
    """

    extra: dict[str, Any] = {}
    if context is not None:
        extra = {
            "secret_id": context.secret_id,
            "secret_task_id": context.secret_task_id,
            "action": context.action,
        }
    return logging.LoggerAdapter(logging.getLogger(service_name), extra)


__all__ = [
    "JsonLogFormatter",
    "ServiceNameFilter",
    "TaskLogger",
    "configure_logging",
    "get_task_logger",
]
