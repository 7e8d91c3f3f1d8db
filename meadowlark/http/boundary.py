"""Shared HTTP boundary for UI routes.

Ownership: render directives, the shared template context, and turning a
directive into a Starlette response.

Route handlers never build responses themselves; they return a
`RenderView` or a `Redirect` and `respond()` does the rest.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from starlette.concurrency import run_in_threadpool
from starlette.responses import RedirectResponse

from meadowlark.http.cookie_session import load_session
from meadowlark.http.jinja import render_template, static_url

if TYPE_CHECKING:
    from collections.abc import Mapping

    from starlette.requests import Request
    from starlette.responses import Response

    from meadowlark.http.cookie_session import CookieSession

HTTP_SEE_OTHER: Final[int] = 303

URLS: Final[dict[str, str]] = {
    "home": "/",
    "about": "/about",
    "hood_river": "/tours/hood-river",
    "request_group_rate": "/tours/request-group-rate",
    "newsletter": "/newsletter",
    "vacation_photo": "/contest/vacation-photo/",
    "thank_you": "/thank-you",
    "process": "/process",
}


@dataclass(frozen=True, slots=True)
class RenderView:
    """Render ``template`` with the shared context plus ``context``."""

    template: str
    context: Mapping[str, object] = field(default_factory=dict)
    status_code: int = 200


@dataclass(frozen=True, slots=True)
class Redirect:
    location: str
    status_code: int = HTTP_SEE_OTHER


type RenderDirective = RenderView | Redirect


def build_template_context(
    request: Request,
    session: CookieSession,
    extra: Mapping[str, object] | None = None,
) -> dict[str, object]:
    """Build the shared template context (includes `request`).

    `flash`, `weather` and `show_tests` come from `RenderContextMiddleware`;
    they default to empty values when the middleware did not run.
    """
    state = request.state
    context: dict[str, object] = {
        "request": request,
        "csrf_token": session.get_csrf_token(),
        "flash": getattr(state, "flash", None),
        "weather": getattr(state, "weather", ()),
        "show_tests": getattr(state, "show_tests", False),
        "page_test_script": None,
        "static_url": static_url,
        "urls": URLS,
    }
    if extra:
        context.update(extra)
    return context


async def respond(request: Request, directive: RenderDirective) -> Response:
    """Turn a route handler's directive into a response."""
    if isinstance(directive, Redirect):
        return RedirectResponse(
            url=directive.location,
            status_code=directive.status_code,
        )

    session = load_session(request)
    context = build_template_context(request, session, directive.context)

    # Template rendering is sync and can be CPU heavy; keep it off the event loop.
    return await run_in_threadpool(
        render_template,
        request,
        directive.template,
        context,
        directive.status_code,
    )


__all__ = [
    "URLS",
    "Redirect",
    "RenderDirective",
    "RenderView",
    "build_template_context",
    "respond",
]
