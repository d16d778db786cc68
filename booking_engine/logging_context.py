"""Request-correlation logging context.

Every log record carries a ``request_id`` so one booking request can be
followed from validation through staff assignment to commit, and one
reminder sweep through each dispatch. Worker threads start with the
default ``-`` until they enter a ``request_context``.

Usage:
    from booking_engine.logging_context import get_request_logger, request_context

    logger = get_request_logger(__name__)
    with request_context(prefix="REQ"):
        logger.info("Processing request")  # -> [REQ-1a2b3c] Processing request
"""

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

_request_id: ContextVar[str] = ContextVar("request_id", default="-")


def new_request_id(prefix: str = "REQ") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:6]}"


def set_request_id(request_id: str) -> None:
    """Set the correlation ID for the current context."""
    _request_id.set(request_id)


def get_request_id() -> str:
    return _request_id.get()


@contextmanager
def request_context(request_id: Optional[str] = None, prefix: str = "REQ") -> Iterator[str]:
    """Scope a correlation ID to a block, restoring the previous one on exit."""
    token = _request_id.set(request_id or new_request_id(prefix))
    try:
        yield _request_id.get()
    finally:
        _request_id.reset(token)


class RequestIdFilter(logging.Filter):
    """Injects request_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = _request_id.get()  # type: ignore[attr-defined]
        return True


def get_request_logger(name: str) -> logging.Logger:
    """Return a logger with the RequestIdFilter attached."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, RequestIdFilter) for f in logger.filters):
        logger.addFilter(RequestIdFilter())
    return logger
