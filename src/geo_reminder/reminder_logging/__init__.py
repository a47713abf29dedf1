"""Logging module with structured formatters, location privacy and session context."""

from .context import ContextFilter, LogContext, log_context, log_session_context
from .filters import DefaultCorrelationFilter, LocationPrivacyFilter
from .formatters import DevFormatter, JSONFormatter
from .setup import get_logger, setup_logging

__all__ = [
    "setup_logging",
    "get_logger",
    "log_context",
    "log_session_context",
    "JSONFormatter",
    "DevFormatter",
    "LocationPrivacyFilter",
    "DefaultCorrelationFilter",
    "LogContext",
    "ContextFilter",
]
