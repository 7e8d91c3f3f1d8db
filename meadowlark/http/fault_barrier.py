"""Per-request fault isolation.

Every HTTP request runs inside its own AnyIO task group. Handlers schedule
deferred work through the request's `FaultScope`, so a continuation that
raises after the handler has moved on still reports into the same request
instead of reaching the event loop's global exception handler.

On a fault the barrier walks a fixed sequence, once per stage:

    DETECTED   -> arm the failsafe exit timer
    DRAINING   -> stop accepting new connections
    RESPONDING -> render the 500 page on this response
    FALLBACK   -> plain-text 500 if rendering failed
    TERMINAL   -> give up; the failsafe timer stays armed
"""

from __future__ import annotations

import inspect
import logging
from enum import Enum
from typing import TYPE_CHECKING, Final

import anyio
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from meadowlark.http.ui_errors import render_server_error_response

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from anyio.abc import TaskGroup
    from starlette.responses import Response
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

    from meadowlark.http.lifecycle import ServerLifecycle

    ErrorRenderer = Callable[[Request, BaseException], Awaitable[Response]]


logger = logging.getLogger(__name__)

FAULT_SCOPE_KEY: Final[str] = "meadowlark.fault_scope"
FALLBACK_BODY: Final[str] = "Server error."


class FaultStage(Enum):
    DETECTED = "detected"
    DRAINING = "draining"
    RESPONDING = "responding"
    FALLBACK = "fallback"
    TERMINAL = "terminal"


class FaultOutcome(Enum):
    """What the client received after a fault."""

    ERROR_PAGE = "error_page"
    PLAIN_TEXT = "plain_text"
    GAVE_UP = "gave_up"


class FaultScope:
    """Deferred-continuation handle bound to one request.

    Must be used from the event loop thread (async handlers).
    """

    def __init__(self, task_group: TaskGroup) -> None:
        """Bind the scope to the request's task group."""
        self._task_group = task_group
        self._done: list[anyio.Event] = []

    def defer(self, func: Callable[..., object], *args: object) -> None:
        """Run ``func(*args)`` after the current step yields.

        Coroutine functions are awaited. An exception raised by ``func``
        cancels the request and is handled by the fault barrier.
        """
        done = anyio.Event()
        self._done.append(done)
        name = getattr(func, "__qualname__", repr(func))
        self._task_group.start_soon(self._run, func, args, done, name=name)

    async def _run(
        self,
        func: Callable[..., object],
        args: tuple[object, ...],
        done: anyio.Event,
    ) -> None:
        result = func(*args)
        if inspect.isawaitable(result):
            await result
        # Left unset on failure; the task group cancels any waiter.
        done.set()

    async def join(self) -> None:
        """Wait until every continuation deferred so far has completed."""
        for done in list(self._done):
            await done.wait()


def _root_fault(exc: BaseException) -> BaseException:
    # Task groups wrap failures; a single leaf is the real fault.
    while isinstance(exc, BaseExceptionGroup) and len(exc.exceptions) == 1:
        exc = exc.exceptions[0]
    return exc


def _describe(scope: Scope) -> str:
    return f"{scope.get('method', '?')} {scope.get('path', '?')}"


class FaultBarrierMiddleware:
    """Contain any fault raised while handling one request."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        render_error: ErrorRenderer | None = None,
    ) -> None:
        """Store the downstream ASGI app and the error page renderer."""
        self.app = app
        self.render_error = render_error or render_server_error_response

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Run the downstream app inside a per-request task group."""
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_tracking(message: Message) -> None:
            nonlocal response_started
            if message.get("type") == "http.response.start":
                response_started = True
            await send(message)

        try:
            async with anyio.create_task_group() as task_group:
                scope[FAULT_SCOPE_KEY] = FaultScope(task_group)
                await self.app(scope, receive, send_tracking)
        except Exception as exc:  # noqa: BLE001
            await self.handle_fault(
                scope,
                receive,
                send_tracking,
                fault=_root_fault(exc),
                response_started=lambda: response_started,
            )

    async def handle_fault(  # noqa: PLR0913
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
        *,
        fault: BaseException,
        response_started: Callable[[], bool],
    ) -> FaultOutcome:
        """Run the fault sequence for one request and report what was sent."""
        request = Request(scope, receive=receive)
        where = _describe(scope)
        logger.error(
            "Request fault caught [%s] %s",
            FaultStage.DETECTED.value,
            where,
            exc_info=fault,
        )

        lifecycle = _lifecycle_from_scope(scope)
        if lifecycle is not None:
            lifecycle.arm_failsafe()
            logger.error("[%s] %s", FaultStage.DRAINING.value, where)
            lifecycle.drain()
        else:
            logger.error("No server lifecycle attached; cannot drain or arm failsafe")

        if response_started():
            logger.error(
                "[%s] %s: response already started, not sending another",
                FaultStage.TERMINAL.value,
                where,
            )
            return FaultOutcome.GAVE_UP

        try:
            response = await self.render_error(request, fault)
            await response(scope, receive, send)
        except Exception:
            logger.exception(
                "[%s] %s: error page failed",
                FaultStage.RESPONDING.value,
                where,
            )
        else:
            return FaultOutcome.ERROR_PAGE

        if response_started():
            logger.error(
                "[%s] %s: error page partially sent",
                FaultStage.TERMINAL.value,
                where,
            )
            return FaultOutcome.GAVE_UP

        try:
            fallback = PlainTextResponse(FALLBACK_BODY, status_code=500)
            await fallback(scope, receive, send)
        except Exception:
            logger.exception(
                "[%s] %s: unable to send 500 response",
                FaultStage.TERMINAL.value,
                where,
            )
            return FaultOutcome.GAVE_UP

        logger.error("[%s] %s: sent plain-text 500", FaultStage.FALLBACK.value, where)
        return FaultOutcome.PLAIN_TEXT


def _lifecycle_from_scope(scope: Scope) -> ServerLifecycle | None:
    app = scope.get("app")
    return getattr(getattr(app, "state", None), "lifecycle", None)


__all__ = [
    "FAULT_SCOPE_KEY",
    "FaultBarrierMiddleware",
    "FaultOutcome",
    "FaultScope",
    "FaultStage",
]
