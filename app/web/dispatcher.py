from __future__ import annotations

import operator
from dataclasses import dataclass, field
from http import HTTPStatus
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional

from starlette.requests import Request
from starlette.responses import Response

from app.core.errors import ConfigurationError
from app.core.logging import get_logger
from app.web.attributes import ERROR_STATUS_CODE, ErrorAttributes, RequestAttributes
from app.web.resolvers import ErrorViewResolver, ResolvedView, ResolverChain

log = get_logger("errorviews.dispatcher")


@dataclass(frozen=True)
class ErrorContext:
    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    include_stack_trace: bool = False
    attributes: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


class ErrorDispatcher:
    """Base for error controllers.

    Owns the ErrorAttributes collaborator and the resolver chain, and offers
    the per-request helpers: status, trace flag, attributes and view
    resolution. Subclasses decide how the result is turned into a response.
    """

    def __init__(
        self,
        error_attributes: Optional[ErrorAttributes],
        resolvers: Optional[Iterable[ErrorViewResolver]] = None,
    ) -> None:
        if error_attributes is None:
            raise ConfigurationError(detail="ErrorAttributes must not be None")
        self.error_attributes = error_attributes
        self.chain = ResolverChain.build(resolvers)

    def get_error_attributes(self, request: Request, include_stack_trace: bool) -> Dict[str, Any]:
        return self.error_attributes.get_error_attributes(RequestAttributes(request), include_stack_trace)

    def get_trace_parameter(self, request: Request) -> bool:
        # First occurrence wins when the parameter is repeated.
        values = request.query_params.getlist("trace")
        if not values:
            return False
        return values[0].lower() != "false"

    def get_status(self, request: Request) -> HTTPStatus:
        status_code = RequestAttributes(request).get_attribute(ERROR_STATUS_CODE)
        if status_code is None:
            return HTTPStatus.INTERNAL_SERVER_ERROR
        try:
            # operator.index rejects floats instead of truncating them
            code = int(status_code) if isinstance(status_code, str) else operator.index(status_code)
            return HTTPStatus(code)
        except (TypeError, ValueError):
            return HTTPStatus.INTERNAL_SERVER_ERROR

    def build_context(self, request: Request, include_stack_trace: bool) -> ErrorContext:
        return ErrorContext(
            status=self.get_status(request),
            include_stack_trace=include_stack_trace,
            attributes=MappingProxyType(dict(self.get_error_attributes(request, include_stack_trace))),
        )

    def resolve_error_view(
        self,
        request: Request,
        response: Optional[Response],
        status: HTTPStatus,
        model: Mapping[str, Any],
    ) -> Optional[ResolvedView]:
        """Return the first view any resolver produces, or None for the default.

        Resolver failures are not caught here.
        """
        for resolver in self.chain:
            resolved = resolver.resolve_error_view(request, status, model)
            if resolved is not None:
                log.debug("error view %s resolved by %r for status %s", resolved.view, resolver, int(status))
                return resolved
        return None
