"""
Structured Logging for the Margin Engine

Correlation IDs and user context carried through ContextVars, OpenTelemetry
trace ids attached to every record, and optional JSON output for log shipping.
"""

import json
import logging
import sys
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from decimal import Decimal
from logging.handlers import RotatingFileHandler
from typing import Any

from opentelemetry import trace

from margin_engine.application.config import LoggingConfig

# Context variables for correlation tracking
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)

# Attributes present on every LogRecord; anything else came in through ``extra=``
_STANDARD_FIELDS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
    | {"message", "asctime", "correlation_id", "user_id", "trace_id", "span_id"}
)


class CorrelationIdFilter(logging.Filter):
    """
    Stamps correlation, user and tracing context onto each record.

    Values passed through ``extra=`` take precedence over the context vars.
    Always returns True; it only enriches records so that format strings
    referencing ``%(correlation_id)s`` never fail.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = (
            getattr(record, "correlation_id", None) or correlation_id_var.get() or "-"
        )
        record.user_id = getattr(record, "user_id", None) or user_id_var.get()

        span = trace.get_current_span()
        span_context = span.get_span_context()
        if span.is_recording() and span_context.trace_id:
            record.trace_id = format(span_context.trace_id, "032x")
            record.span_id = format(span_context.span_id, "016x")
        else:
            record.trace_id = None
            record.span_id = None
        return True


class MarginJSONFormatter(logging.Formatter):
    """JSON formatter for structured engine logs."""

    def __init__(self, include_extra: bool = True, sort_keys: bool = True) -> None:
        super().__init__()
        self.include_extra = include_extra
        self.sort_keys = sort_keys

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key in ("correlation_id", "user_id", "trace_id", "span_id"):
            value = getattr(record, key, None)
            if value and value != "-":
                log_entry[key] = value

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        if self.include_extra:
            extra = {
                key: value
                for key, value in record.__dict__.items()
                if key not in _STANDARD_FIELDS and not key.startswith("_")
            }
            if extra:
                log_entry["extra"] = extra

        return json.dumps(log_entry, sort_keys=self.sort_keys, default=self._serialize_value)

    @staticmethod
    def _serialize_value(value: Any) -> Any:
        """Serialize complex values for JSON output."""
        if isinstance(value, Decimal):
            return str(value)
        elif isinstance(value, (set, frozenset)):
            return list(value)
        elif isinstance(value, datetime):
            return value.isoformat()
        return str(value)


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str) -> None:
    """Set correlation ID for current context."""
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    """Get current correlation ID."""
    return correlation_id_var.get()


@contextmanager
def correlation_context(correlation_id: str | None = None) -> Generator[str, None, None]:
    """Context manager for correlation ID scope."""
    if correlation_id is None:
        correlation_id = generate_correlation_id()

    token = correlation_id_var.set(correlation_id)
    try:
        yield correlation_id
    finally:
        correlation_id_var.reset(token)


@contextmanager
def user_context(user_id: str) -> Generator[None, None, None]:
    """Context manager for user context scope."""
    token = user_id_var.set(user_id)
    try:
        yield
    finally:
        user_id_var.reset(token)


def configure_logging(config: LoggingConfig | None = None, json_format: bool = False) -> None:
    """
    Configure root logging for the engine.

    Args:
        config: Logging configuration, defaults to ``LoggingConfig()``
        json_format: Emit JSON lines instead of ``config.format`` text
    """
    config = config or LoggingConfig()

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter: logging.Formatter
    if json_format:
        formatter = MarginJSONFormatter()
    else:
        formatter = logging.Formatter(config.format)

    context_filter = CorrelationIdFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(context_filter)
    root_logger.addHandler(console_handler)

    if config.file:
        file_handler = RotatingFileHandler(
            config.file, maxBytes=config.max_bytes, backupCount=config.backup_count
        )
        file_handler.setFormatter(formatter)
        file_handler.addFilter(context_filter)
        root_logger.addHandler(file_handler)

    root_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    logging.getLogger(__name__).info("Logging configured", extra={"level": config.level})
