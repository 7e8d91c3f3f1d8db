"""Starlette/FastAPI middleware.

Pure ASGI middlewares; `create_app()` keeps their ordering explicit.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Final

from starlette.requests import Request

from meadowlark.http.cookie_session import CookieSession
from meadowlark.http.dependencies import get_settings, get_weather_provider
from meadowlark.http.settings import RunMode

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

access_logger = logging.getLogger("meadowlark.access")

STATIC_PREFIXES: Final[tuple[str, ...]] = ("/static", "/qa")
TEST_QUERY_FLAG: Final[str] = "test"


class HeadMethodMiddleware:
    """Convert HEAD requests to GET and strip the response body.

    FastAPI's ``APIRoute`` does not auto-add HEAD for GET routes (unlike
    plain Starlette's ``Route``), so HEAD is served through GET here.
    """

    def __init__(self, app: ASGIApp) -> None:
        """Store the downstream ASGI app."""
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Serve HEAD via GET semantics while suppressing the response body."""
        if scope["type"] != "http" or scope["method"] != "HEAD":
            await self.app(scope, receive, send)
            return

        async def send_no_body(message: Message) -> None:
            if message["type"] == "http.response.body":
                await send({**message, "body": b""})
                return
            await send(message)

        await self.app({**scope, "method": "GET"}, receive, send_no_body)


class RequestLogMiddleware:
    """Log one line per request: method, path, status and duration."""

    def __init__(self, app: ASGIApp) -> None:
        """Store the downstream ASGI app."""
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Time the request and log it once the app has finished."""
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        started_at = time.monotonic()
        status_code = 500

        async def send_capturing(message: Message) -> None:
            nonlocal status_code
            if message.get("type") == "http.response.start":
                status_code = int(message["status"])
            await send(message)

        try:
            await self.app(scope, receive, send_capturing)
        finally:
            duration_ms = (time.monotonic() - started_at) * 1000.0
            path = scope.get("path", "")
            query = scope.get("query_string", b"")
            if query:
                path = f"{path}?{query.decode('latin-1')}"
            access_logger.info(
                "%s %s %d %.1f ms",
                scope.get("method", "-"),
                path,
                status_code,
                duration_ms,
            )


class RenderContextMiddleware:
    """Attach per-request display data to ``request.state``.

    - ``show_tests``: page test harness on, never in production
    - ``weather``: the weather provider's snapshot
    - ``flash``: the pending flash, removed from the session
    """

    def __init__(self, app: ASGIApp) -> None:
        """Store the downstream ASGI app."""
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Populate request.state, then run the downstream app."""
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        path = str(scope.get("path") or "")
        if path.startswith(STATIC_PREFIXES):
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive=receive)
        request.state.show_tests = show_tests_enabled(
            get_settings(request).mode,
            request.query_params.get(TEST_QUERY_FLAG),
        )
        request.state.weather = get_weather_provider(request).snapshot()

        session_data = scope.get("session")
        if isinstance(session_data, dict):
            request.state.flash = CookieSession(data=session_data).pop_flash()
        else:
            request.state.flash = None

        await self.app(scope, receive, send)


def show_tests_enabled(mode: RunMode, flag: str | None) -> bool:
    """Whether pages load the in-browser test harness."""
    return mode is not RunMode.PRODUCTION and flag == "1"
