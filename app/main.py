from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from typing import Iterable, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import make_error_router
from app.core.config import Settings, get_settings
from app.core.errors import AppError
from app.core.logging import get_logger, set_log_context, setup_logging
from app.schemas import HealthResponse
from app.web.attributes import DefaultErrorAttributes, ErrorAttributes, record_error
from app.web.controller import ErrorController
from app.web.resolvers import ErrorViewResolver, MappingErrorViewResolver, StaticErrorPageResolver

log = get_logger("errorviews.main")


def configured_resolvers(settings: Settings) -> List[ErrorViewResolver]:
    resolvers: List[ErrorViewResolver] = []
    if settings.ERROR_PAGES_DIR:
        resolvers.append(StaticErrorPageResolver(settings.ERROR_PAGES_DIR, order=settings.ERROR_PAGES_ORDER))
    if settings.ERROR_VIEWS:
        resolvers.append(MappingErrorViewResolver(settings.ERROR_VIEWS, order=settings.ERROR_VIEWS_ORDER))
    return resolvers


def _dispatch(request: Request, headers: Optional[dict] = None) -> Response:
    controller: ErrorController = request.app.state.error_controller
    try:
        response = controller.handle(request)
    except Exception:
        # Last resort: never re-enter the controller from here.
        log.exception("error dispatch failed for %s", request.url.path)
        return PlainTextResponse("Internal Server Error", status_code=500)
    if headers:
        response.headers.update(headers)
    return response


def create_app(
    settings: Optional[Settings] = None,
    *,
    resolvers: Optional[Iterable[ErrorViewResolver]] = None,
    error_attributes: Optional[ErrorAttributes] = None,
) -> FastAPI:
    settings = settings or get_settings()

    all_resolvers = configured_resolvers(settings)
    if resolvers is not None:
        all_resolvers.extend(resolvers)

    # The chain is sorted here, once, and shared by every request.
    controller = ErrorController(
        error_attributes or DefaultErrorAttributes(),
        all_resolvers,
        include_stacktrace=settings.ERROR_INCLUDE_STACKTRACE,
        whitelabel_enabled=settings.ERROR_WHITELABEL_ENABLED,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.LOG_LEVEL)
        log.info(
            "startup ok | error_path=%s resolvers=%s stacktrace=%s whitelabel=%s",
            settings.ERROR_PATH,
            len(controller.chain),
            settings.ERROR_INCLUDE_STACKTRACE,
            settings.ERROR_WHITELABEL_ENABLED,
        )
        yield
        log.info("shutdown ok")

    app = FastAPI(title="Error Views", version="1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.error_controller = controller

    app.include_router(make_error_router(settings.ERROR_PATH))

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = rid
        set_log_context(request_id=rid, path=request.url.path)

        t0 = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            dt_ms = int((time.perf_counter() - t0) * 1000)
            log.debug("request %s %s done in %sms", request.method, request.url.path, dt_ms)

        response.headers["X-Request-ID"] = rid
        return response

    @app.exception_handler(AppError)
    def app_error_handler(request: Request, exc: AppError):
        record_error(request, status_code=exc.status_code, exception=exc, message=exc.detail)
        return _dispatch(request)

    @app.exception_handler(RequestValidationError)
    def validation_error_handler(request: Request, exc: RequestValidationError):
        record_error(request, status_code=422, exception=exc, message="Invalid request")
        return _dispatch(request)

    @app.exception_handler(StarletteHTTPException)
    def http_error_handler(request: Request, exc: StarletteHTTPException):
        detail = exc.detail if isinstance(exc.detail, str) else None
        record_error(request, status_code=exc.status_code, message=detail)
        return _dispatch(request, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    def unhandled_error_handler(request: Request, exc: Exception):
        log.error("unhandled error: %s", exc)
        record_error(request, status_code=500, exception=exc)
        return _dispatch(request)

    @app.get("/health", response_model=HealthResponse)
    async def health(request: Request) -> HealthResponse:
        return HealthResponse(resolvers=len(request.app.state.error_controller.chain))

    return app


app = create_app()


def run() -> None:
    """Serve ``app.main:app`` with uvicorn (the ``error-views`` console script)."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("app.main:app", host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
