"""Logging setup for the Workroom service.

``configure_logging()`` installs a single stdout handler on the root
logger: one JSON object per line in production, a compact colored line
for local development.
"""

import json
import logging
import os
import sys
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Optional

from src.logging_config.config import DEFAULT_LOGGING_CONFIG, LogFormat, LoggingConfig, LogLevel
from src.logging_config.context import get_context_dict

# ``extra=`` keys the service passes to its loggers.
DOMAIN_FIELDS = ("workspace_id", "invitation_id", "user_id")
HTTP_FIELDS = ("method", "path", "status_code", "duration_ms")


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: getattr(record, key)
        for key in DOMAIN_FIELDS + HTTP_FIELDS
        if getattr(record, key, None) is not None
    }


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def __init__(self, service_name: str = "workroom", include_caller: bool = True):
        super().__init__()
        self.service_name = service_name
        self.include_caller = include_caller

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.include_caller:
            payload["caller"] = f"{record.module}.{record.funcName}:{record.lineno}"
        payload.update(get_context_dict())
        payload.update(_record_extras(record))
        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }
        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """``12:00:01.123 INFO     src.workspaces.coordinator: Member added [request_id=.., workspace_id=..]``"""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        clock = datetime.fromtimestamp(record.created, timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        fields = {**get_context_dict(), **_record_extras(record)}
        suffix = " [" + ", ".join(f"{k}={v}" for k, v in fields.items()) + "]" if fields else ""

        line = f"{color}{clock} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}{suffix}"
        if record.exc_info and record.exc_info[0] is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _from_environment(config: LoggingConfig) -> LoggingConfig:
    level = os.environ.get("WORKROOM_LOG_LEVEL", "").upper()
    if level in LogLevel.__members__:
        config = replace(config, level=LogLevel(level))

    fmt = os.environ.get("WORKROOM_LOG_FORMAT", "").lower()
    if fmt in {f.value for f in LogFormat}:
        config = replace(config, format=LogFormat(fmt))
    return config


def configure_logging(config: Optional[LoggingConfig] = None) -> None:
    """Install the service's log handler on the root logger.

    Replaces any existing root handlers. ``WORKROOM_LOG_LEVEL`` and
    ``WORKROOM_LOG_FORMAT`` take precedence over ``config``.
    """
    config = _from_environment(config or DEFAULT_LOGGING_CONFIG)

    if config.format == LogFormat.JSON:
        formatter: logging.Formatter = StructuredFormatter(config.service_name, config.include_caller)
    else:
        formatter = ConsoleFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(config.level.value)

    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)
