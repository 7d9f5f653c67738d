# backend/app/utils/context.py
"""
Correlation ID context shared by HTTP requests and background jobs.

Uses contextvars so the value follows async/await and is copied into
asyncio.to_thread() workers. Every log record picks it up through
CorrelationIdFilter (see app.utils.logging).

Usage:
    from app.utils.context import correlation_scope, get_correlation_id

    with correlation_scope("refresh"):
        logger.info("cycle started")   # tagged with "refresh-<uuid>"
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Correlation ID of the current request or job cycle, if any."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)


def new_correlation_id(prefix: str | None = None) -> str:
    """Generate a fresh ID, optionally prefixed (e.g. "refresh-1f0c...")."""
    value = str(uuid.uuid4())
    return f"{prefix}-{value}" if prefix else value


@contextmanager
def correlation_scope(prefix: str | None = None, correlation_id: str | None = None) -> Iterator[str]:
    """
    Bind a correlation ID for the duration of the block.

    The previous value is restored on exit, so scopes can nest.
    """
    value = correlation_id or new_correlation_id(prefix)
    token = _correlation_id_var.set(value)
    try:
        yield value
    finally:
        _correlation_id_var.reset(token)
