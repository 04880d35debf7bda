"""Structured logging for secretforge.

Each line carries the request and correlation IDs of the HTTP request
being served, plus the cache context a record was logged with:

    logger.debug("Cache HIT", extra={"cache_key": key, "cache_view": "history"})

JSON output is meant for log aggregation; the console format is for
development and appends the same context as ``key=value`` pairs.
"""

from __future__ import annotations

import contextvars
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

import orjson

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

# Record attributes passed through ``extra=`` that reach the output
CONTEXT_FIELDS = (
    "cache_key",
    "cache_view",
    "mutation",
    "ttl",
    "deleted",
    "patterns",
)


@contextmanager
def request_context(request_id: str, correlation_id: str) -> Iterator[None]:
    """Bind request and correlation IDs to every record logged inside."""
    request_token = request_id_var.set(request_id)
    correlation_token = correlation_id_var.set(correlation_id)
    try:
        yield
    finally:
        request_id_var.reset(request_token)
        correlation_id_var.reset(correlation_token)


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Request IDs and cache context attached to a record, unset fields omitted."""
    context: dict[str, Any] = {}
    if request_id := request_id_var.get():
        context["request_id"] = request_id
    if correlation_id := correlation_id_var.get():
        context["correlation_id"] = correlation_id
    for field in CONTEXT_FIELDS:
        value = getattr(record, field, None)
        if value is not None:
            context[field] = value
    return context


class JsonFormatter(logging.Formatter):
    """One JSON object per record.

    {"timestamp": "...", "level": "DEBUG", "logger": "secretforge.cache.aside",
     "message": "Cache HIT", "request_id": "...", "cache_key": "history:20:1",
     "cache_view": "history"}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **record_context(record),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return orjson.dumps(log_data, default=str).decode()


class ConsoleFormatter(logging.Formatter):
    """Readable single-line output for development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = record.levelname
        if self.use_colors:
            level = f"{self.COLORS.get(level, '')}{level}{self.RESET}"

        context = record_context(record)
        request_id = context.pop("request_id", "")
        context.pop("correlation_id", None)
        pairs = " ".join(f"{key}={value}" for key, value in context.items())

        line = f"{timestamp} {level:8} {record.name}: {record.getMessage()}"
        if pairs:
            line += f" [{pairs}]"
        if request_id:
            line += f" req={request_id[:8]}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(
    json_format: bool = True,
    level: str = "INFO",
    use_colors: bool = True,
) -> None:
    """Install a single stderr handler on the root logger."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_format else ConsoleFormatter(use_colors))
    root_logger.addHandler(handler)

    # Per-request access lines duplicate the metrics middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
