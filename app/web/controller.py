from __future__ import annotations

import html
from http import HTTPStatus
from typing import Any, Callable, Iterable, Mapping, Optional

from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, Response

from app.core.config import IncludeStacktrace
from app.core.logging import get_logger, set_log_context
from app.schemas import ErrorBody
from app.web.attributes import ErrorAttributes
from app.web.dispatcher import ErrorContext, ErrorDispatcher
from app.web.resolvers import ErrorViewResolver, ResolvedView

log = get_logger("errorviews.controller")

ViewRenderer = Callable[[ResolvedView, HTTPStatus], Response]


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "").lower()


def render_whitelabel(model: Mapping[str, Any], status: HTTPStatus) -> HTMLResponse:
    def esc(key: str) -> str:
        return html.escape(str(model.get(key, "")))

    parts = [
        "<html><body><h1>Whitelabel Error Page</h1>",
        f"<p>This application has no explicit mapping for {esc('path')}, "
        "so you are seeing this as a fallback.</p>",
        f"<div id='created'>{esc('timestamp')}</div>",
        f"<div>There was an unexpected error (type={esc('error')}, status={esc('status')}).</div>",
        f"<div>{esc('message')}</div>",
    ]
    if model.get("trace"):
        parts.append(f"<div style='white-space:pre-wrap;'>{esc('trace')}</div>")
    parts.append("</body></html>")
    return HTMLResponse("".join(parts), status_code=int(status))


def render_view(view: ResolvedView, status: HTTPStatus) -> Response:
    """Default renderer: static pages are served raw, named views get the whitelabel page."""
    if view.source is not None:
        return HTMLResponse(view.source.read_text(encoding="utf-8"), status_code=int(status))
    return render_whitelabel(view.model, status)


class ErrorController(ErrorDispatcher):
    """Turns a failed request into an HTML page or a JSON error body."""

    def __init__(
        self,
        error_attributes: Optional[ErrorAttributes],
        resolvers: Optional[Iterable[ErrorViewResolver]] = None,
        *,
        include_stacktrace: IncludeStacktrace = "never",
        whitelabel_enabled: bool = True,
        renderer: Optional[ViewRenderer] = None,
    ) -> None:
        super().__init__(error_attributes, resolvers)
        self.include_stacktrace = include_stacktrace
        self.whitelabel_enabled = whitelabel_enabled
        self.renderer = renderer or render_view

    def is_include_stack_trace(self, request: Request) -> bool:
        if self.include_stacktrace == "always":
            return True
        if self.include_stacktrace == "on_trace_param":
            return self.get_trace_parameter(request)
        return False

    def handle(self, request: Request) -> Response:
        ctx = self.build_context(request, self.is_include_stack_trace(request))
        set_log_context(error_status=int(ctx.status))
        log.info("dispatching error status=%s html=%s", int(ctx.status), _wants_html(request))
        if _wants_html(request):
            response = self.error_html(request, ctx)
            if response is not None:
                return response
        return self.error_json(ctx)

    def error_html(self, request: Request, ctx: ErrorContext) -> Optional[Response]:
        model = dict(ctx.attributes)
        resolved = self.resolve_error_view(request, None, ctx.status, model)
        if resolved is not None:
            return self.renderer(resolved, resolved.status or ctx.status)
        if self.whitelabel_enabled:
            return render_whitelabel(model, ctx.status)
        return None

    def error_json(self, ctx: ErrorContext) -> JSONResponse:
        body = ErrorBody.model_validate(dict(ctx.attributes))
        return JSONResponse(status_code=int(ctx.status), content=body.model_dump(mode="json", exclude_none=True))
