from __future__ import annotations

import traceback
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, Dict, Mapping, Optional, Protocol

from starlette.requests import Request


ERROR_STATUS_CODE = "error.status_code"
ERROR_EXCEPTION = "error.exception"
ERROR_MESSAGE = "error.message"
ERROR_REQUEST_URI = "error.request_uri"

_SCOPE_KEY = "error.attributes"


class RequestAttributes:
    """Read-only attribute lookup over a request.

    Exception handlers attach error metadata with ``record_error``; everything
    downstream only reads it back through ``get_attribute``.
    """

    def __init__(self, request: Request) -> None:
        self.request = request

    def get_attribute(self, name: str) -> Any:
        return self._attributes(self.request).get(name)

    @property
    def path(self) -> str:
        return self.request.url.path

    @staticmethod
    def _attributes(request: Request) -> Mapping[str, Any]:
        return request.scope.get(_SCOPE_KEY) or {}


def record_error(
    request: Request,
    *,
    status_code: Optional[int] = None,
    exception: Optional[BaseException] = None,
    message: Optional[str] = None,
) -> None:
    attrs: Dict[str, Any] = request.scope.setdefault(_SCOPE_KEY, {})
    if status_code is not None:
        attrs[ERROR_STATUS_CODE] = status_code
    if exception is not None:
        attrs[ERROR_EXCEPTION] = exception
    if message is not None:
        attrs[ERROR_MESSAGE] = message
    attrs.setdefault(ERROR_REQUEST_URI, request.url.path)


class ErrorAttributes(Protocol):
    def get_error_attributes(
        self, request_attributes: RequestAttributes, include_stack_trace: bool
    ) -> Dict[str, Any]: ...


class DefaultErrorAttributes:
    """Collects timestamp, status, error, exception, message, trace and path."""

    def get_error_attributes(
        self, request_attributes: RequestAttributes, include_stack_trace: bool
    ) -> Dict[str, Any]:
        attrs: Dict[str, Any] = {"timestamp": datetime.now(timezone.utc).isoformat()}
        self._add_status(attrs, request_attributes)
        self._add_error_details(attrs, request_attributes, include_stack_trace)
        self._add_path(attrs, request_attributes)
        return attrs

    def _add_status(self, attrs: Dict[str, Any], request_attributes: RequestAttributes) -> None:
        status = request_attributes.get_attribute(ERROR_STATUS_CODE)
        if status is None:
            attrs["status"] = 999
            attrs["error"] = "None"
            return
        attrs["status"] = status
        try:
            attrs["error"] = HTTPStatus(int(status)).phrase
        except (TypeError, ValueError):
            # Unknown code: keep the raw value
            attrs["error"] = f"Http Status {status}"

    def _add_error_details(
        self, attrs: Dict[str, Any], request_attributes: RequestAttributes, include_stack_trace: bool
    ) -> None:
        exc = request_attributes.get_attribute(ERROR_EXCEPTION)
        message = request_attributes.get_attribute(ERROR_MESSAGE)
        if isinstance(exc, BaseException):
            attrs["exception"] = type(exc).__name__
            if include_stack_trace:
                attrs["trace"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            if not message:
                message = str(exc)
        attrs["message"] = message or "No message available"

    def _add_path(self, attrs: Dict[str, Any], request_attributes: RequestAttributes) -> None:
        path = request_attributes.get_attribute(ERROR_REQUEST_URI)
        attrs["path"] = path if path is not None else request_attributes.path
