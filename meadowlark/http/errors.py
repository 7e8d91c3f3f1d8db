"""FastAPI/Starlette error handlers.

Ownership: error shaping outside the fault barrier; UI HTML rendering is
delegated to ui_errors.

- HTML 404 page for unmatched routes, rendered via Jinja2
- FastAPI defaults for other HTTP errors (405 and friends)
- Plain-text 500 for anything that escapes the fault barrier
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from fastapi.exception_handlers import (
    http_exception_handler,
    request_validation_exception_handler,
)
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import PlainTextResponse

from meadowlark.http.ui_errors import render_notfound_response

if TYPE_CHECKING:
    from fastapi import FastAPI
    from starlette.requests import Request
    from starlette.responses import Response

logger = logging.getLogger(__name__)

STATUS_NOT_FOUND: Final[int] = 404


async def _http_exception_handler(request: Request, exc: Exception) -> Response:
    if not isinstance(exc, StarletteHTTPException):
        return PlainTextResponse("Internal Server Error", status_code=500)

    if exc.status_code != STATUS_NOT_FOUND:
        return await http_exception_handler(request, exc)

    try:
        response = await render_notfound_response(request)
    except Exception:
        logger.exception("Rendering the 404 page failed")
        response = PlainTextResponse("Not Found", status_code=STATUS_NOT_FOUND)
    return response


async def _request_validation_handler(
    request: Request,
    exc: Exception,
) -> Response:
    if not isinstance(exc, RequestValidationError):
        return PlainTextResponse("Internal Server Error", status_code=500)
    logger.info("Invalid request %s %s: %s", request.method, request.url.path, exc)
    return await request_validation_exception_handler(request, exc)


async def _unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> Response:
    logger.error(
        "Unhandled error outside the fault barrier: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return PlainTextResponse("Internal Server Error", status_code=500)


def install_error_handlers(app: FastAPI) -> None:
    """Register the site's exception handlers."""
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
