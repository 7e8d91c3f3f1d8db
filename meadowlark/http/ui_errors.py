"""UI error pages.

Ownership: render the 404 and 500 templates through the normal view path.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from meadowlark.http.boundary import RenderView, respond

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response


async def render_notfound_response(request: Request) -> Response:
    """Render the 404 page."""
    return await respond(request, RenderView("notfound.html.j2", status_code=404))


async def render_server_error_response(
    request: Request,
    exc: BaseException | None = None,
) -> Response:
    """Render the 500 page; the fault itself is never shown to the client."""
    _ = exc
    return await respond(request, RenderView("error.html.j2", status_code=500))
