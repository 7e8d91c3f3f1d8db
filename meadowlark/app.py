"""ASGI application factory and server entry points.

- ``create_app()`` builds the FastAPI app (``uvicorn --factory meadowlark.app:create_app``),
- ``start_server()`` runs it under uvicorn and returns the live lifecycle handle,
- ``main()`` is the blocking process entry point (``python -m meadowlark``).

Importing this module has no side effects.

The HTTP behavior itself lives in ``meadowlark.http`` (fault barrier,
middleware, session handling, error shaping) and ``meadowlark.views``.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Protocol, cast

import uvicorn
from fastapi import FastAPI
from starlette.staticfiles import StaticFiles

from meadowlark.http.cookie_session import (
    DEFAULT_SAMESITE,
    SESSION_COOKIE_NAME,
    session_secret_key,
)
from meadowlark.http.errors import install_error_handlers
from meadowlark.http.fault_barrier import FaultBarrierMiddleware
from meadowlark.http.lifecycle import ServerLifecycle
from meadowlark.http.logging_config import configure_logging
from meadowlark.http.middleware import (
    HeadMethodMiddleware,
    RenderContextMiddleware,
    RequestLogMiddleware,
)
from meadowlark.http.session_middleware import MeadowlarkSessionMiddleware
from meadowlark.http.settings import AppSettings, default_static_dir
from meadowlark.views import router as views_router
from meadowlark.weather import StaticWeatherProvider

if TYPE_CHECKING:
    from starlette.types import ASGIApp

    from meadowlark.weather import WeatherProvider


logger = logging.getLogger(__name__)

STARTUP_POLL_SECONDS = 0.05


class MiddlewareFactory(Protocol):
    def __call__(self, app: ASGIApp, /, *args: object, **kwargs: object) -> ASGIApp: ...


class ServerStartError(RuntimeError):
    """Raised when uvicorn exits before it starts listening."""

    def __init__(self, host: str, port: int) -> None:
        """Create a ServerStartError for the given address."""
        super().__init__(f"server failed to start on {host}:{port}")


def create_app(
    settings: AppSettings | None = None,
    *,
    lifecycle: ServerLifecycle | None = None,
    weather_provider: WeatherProvider | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or AppSettings.from_env()
    lifecycle = lifecycle or ServerLifecycle(failsafe_delay=settings.failsafe_delay)

    app = FastAPI(openapi_url=None, docs_url=None, redoc_url=None)
    app.state.settings = settings
    app.state.lifecycle = lifecycle
    app.state.weather_provider = weather_provider or StaticWeatherProvider()

    install_error_handlers(app)

    # Outermost to innermost: request log, session, fault barrier, HEAD
    # handling, context; each add_middleware call wraps the previous one.
    # Fault responses pass through the session middleware, so a flash
    # consumed by a failed request is not replayed.
    app.add_middleware(cast("MiddlewareFactory", RenderContextMiddleware))
    app.add_middleware(cast("MiddlewareFactory", HeadMethodMiddleware))
    app.add_middleware(cast("MiddlewareFactory", FaultBarrierMiddleware))
    app.add_middleware(
        cast("MiddlewareFactory", MeadowlarkSessionMiddleware),
        secret_key=session_secret_key(settings.mode),
        session_cookie=SESSION_COOKIE_NAME,
        same_site=DEFAULT_SAMESITE,
        https_only=settings.is_production,
    )
    app.add_middleware(cast("MiddlewareFactory", RequestLogMiddleware))

    static_dir = default_static_dir()
    app.mount(
        "/static",
        StaticFiles(directory=str(static_dir), check_dir=False),
        name="static",
    )
    app.mount(
        "/qa",
        StaticFiles(directory=str(static_dir / "qa"), check_dir=False),
        name="qa",
    )

    app.include_router(views_router)

    return app


def start_server(settings: AppSettings | None = None) -> ServerLifecycle:
    """Start listening on a background thread; return the live handle.

    Logging is left as the caller configured it.
    """
    settings = settings or AppSettings.from_env()
    lifecycle = ServerLifecycle(failsafe_delay=settings.failsafe_delay)
    app = create_app(settings, lifecycle=lifecycle)

    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        access_log=False,
        log_config=None,
        lifespan="off",
    )
    server = uvicorn.Server(config)
    thread = threading.Thread(
        target=server.run,
        name="meadowlark-server",
        daemon=True,
    )
    lifecycle.attach(server, thread)
    thread.start()

    while not server.started:
        if not thread.is_alive():
            raise ServerStartError(settings.host, settings.port)
        time.sleep(STARTUP_POLL_SECONDS)

    logger.info(
        "Meadowlark started in %s mode on http://%s:%d; press Ctrl-C to terminate.",
        settings.mode,
        settings.host,
        settings.port,
    )
    return lifecycle


def main() -> None:
    """Run the server until it is interrupted or drained."""
    settings = AppSettings.from_env()
    configure_logging(settings)
    lifecycle = start_server(settings)
    try:
        lifecycle.wait()
    except KeyboardInterrupt:
        logger.info("Interrupted; draining")
        lifecycle.drain()
        lifecycle.wait()


__all__ = [
    "create_app",
    "main",
    "start_server",
]
