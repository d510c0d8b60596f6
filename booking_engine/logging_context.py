"""Request id context for tracing one booking request through the engine.

A request id lives in a ContextVar, so every coroutine started for a
request sees the same id while concurrent requests keep their own. The
``RequestIdFilter`` copies it onto each log record and ``LOG_FORMAT``
prints it, which lets scheduler, lifecycle and payment log lines for the
same booking be grepped together.

Usage:
    from booking_engine.logging_context import get_request_logger, request_scope

    logger = get_request_logger(__name__)
    with request_scope() as request_id:
        logger.info("Reserving slot")  # ... [REQ-1a2b3c4d] Reserving slot
"""

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

NO_REQUEST_ID = "-"

LOG_FORMAT = "%(asctime)s [%(name)s] [%(request_id)s] %(levelname)s: %(message)s"

_request_id: ContextVar[str] = ContextVar("request_id", default=NO_REQUEST_ID)


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def get_request_id() -> str:
    return _request_id.get()


@contextmanager
def request_scope(request_id: Optional[str] = None) -> Iterator[str]:
    """Bind a request id for the duration of the block, then restore the previous one.

    A fresh ``REQ-xxxxxxxx`` id is generated when none is given.
    """
    request_id = request_id or f"REQ-{uuid.uuid4().hex[:8]}"
    token = _request_id.set(request_id)
    try:
        yield request_id
    finally:
        _request_id.reset(token)


class RequestIdFilter(logging.Filter):
    """Stamps the current request id on every record it sees."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = _request_id.get()  # type: ignore[attr-defined]
        return True


def install_request_id(handlers: Optional[list[logging.Handler]] = None) -> None:
    """Attach a RequestIdFilter to handlers (default: the root logger's).

    Handler-level filters also see records propagated from loggers that
    never went through ``get_request_logger``, so ``%(request_id)s`` is
    always defined for ``LOG_FORMAT``.
    """
    for handler in handlers if handlers is not None else logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())


def get_request_logger(name: str) -> logging.Logger:
    """Return a logger whose records always carry ``request_id``."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, RequestIdFilter) for f in logger.filters):
        logger.addFilter(RequestIdFilter())
    return logger
