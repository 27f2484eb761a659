from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import Response

from app.schemas import ErrorBody

_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def make_error_router(path: str = "/error") -> APIRouter:
    router = APIRouter(tags=["error"])

    @router.api_route(
        path,
        methods=_METHODS,
        include_in_schema=True,
        responses={500: {"model": ErrorBody}},
    )
    def error(request: Request) -> Response:
        return request.app.state.error_controller.handle(request)

    return router
