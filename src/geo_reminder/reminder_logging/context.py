"""Task-local logging context for adding fields to log records.

Backed by a ContextVar so concurrent asyncio tasks (one session's sample
handler, another's start) never see each other's fields.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

_context: ContextVar[dict[str, Any] | None] = ContextVar("log_context", default=None)


class LogContext:
    """Accessors for the current log context fields."""

    @classmethod
    def set(cls, **kwargs: Any) -> None:
        _context.set({**cls.get(), **kwargs})

    @classmethod
    def get(cls) -> dict[str, Any]:
        return dict(_context.get() or {})

    @classmethod
    def clear(cls) -> None:
        _context.set(None)


class ContextFilter(logging.Filter):
    """Injects LogContext fields into log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in LogContext.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Set logging context fields for the duration of the block.

    Nested blocks add to the outer fields; leaving a block restores them.
    """
    token = _context.set({**LogContext.get(), **kwargs})
    try:
        yield
    finally:
        _context.reset(token)


@contextmanager
def log_session_context(session_id: str, **kwargs: Any) -> Iterator[None]:
    """Convenience context manager for tracking session operations."""
    correlation_id = kwargs.pop("correlation_id", session_id)
    with log_context(session_id=session_id, correlation_id=correlation_id, **kwargs):
        yield
