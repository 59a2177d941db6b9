"""Logging and tracing context for the engine."""

from .logging import (
    CorrelationIdFilter,
    MarginJSONFormatter,
    configure_logging,
    correlation_context,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
    user_context,
)

__all__ = [
    "CorrelationIdFilter",
    "MarginJSONFormatter",
    "configure_logging",
    "correlation_context",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
    "user_context",
]
