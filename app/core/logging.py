from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Optional


request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
path_var: ContextVar[str] = ContextVar("path", default="-")
# Set once a failed request reaches the error controller.
error_status_var: ContextVar[str] = ContextVar("error_status", default="-")

LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    " | request_id=%(request_id)s path=%(path)s error_status=%(error_status)s"
)


class ErrorContextFilter(logging.Filter):
    """Stamps request id, original path and dispatched error status on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        record.path = path_var.get()
        record.error_status = error_status_var.get()
        return True


def set_log_context(
    *,
    request_id: Optional[str] = None,
    path: Optional[str] = None,
    error_status: Optional[int] = None,
) -> None:
    if request_id is not None:
        request_id_var.set(request_id)
        # A new request starts without an error.
        error_status_var.set("-")
    if path is not None:
        path_var.set(path)
    if error_status is not None:
        error_status_var.set(str(error_status))


def setup_logging(level: str = "INFO") -> None:
    lvl = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(lvl)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ErrorContextFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.handlers = [handler]

    logging.getLogger("uvicorn.error").setLevel(lvl)
    logging.getLogger("uvicorn.access").setLevel(max(lvl, logging.INFO))


def get_logger(name: str = "errorviews") -> logging.Logger:
    return logging.getLogger(name)
