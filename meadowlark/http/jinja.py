"""Jinja2 template rendering helpers for the Meadowlark UI."""

from __future__ import annotations

import base64
import datetime
import hashlib
from functools import cache, lru_cache
from os import environ
from pathlib import Path
from typing import TYPE_CHECKING, Final

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
from starlette.templating import Jinja2Templates

from meadowlark.http.settings import default_static_dir, package_dir

if TYPE_CHECKING:
    from collections.abc import Mapping

    from starlette.requests import Request
    from starlette.responses import Response

TEMPLATES_DIR_ENV: Final[str] = "MEADOWLARK_TEMPLATES_DIR"
_MISSING_REQUEST_ERROR: Final[str] = "context must include Request under 'request'"
_STATIC_DIR: Path = default_static_dir()
_STATIC_URL_PARAM: Final[str] = "x"
_STATIC_TOKEN_CACHE_MAX: int = 256


def templates_dir() -> Path:
    """Return the Jinja2 templates directory path."""
    raw = environ.get(TEMPLATES_DIR_ENV, "").strip()
    if raw:
        return Path(raw).expanduser()
    return package_dir() / "templates"


@lru_cache(maxsize=_STATIC_TOKEN_CACHE_MAX)
def _static_file_token(rel_path: str) -> str | None:
    """Return a cache-buster token for a static file."""
    rel_path = rel_path.replace("\\", "/")
    rel_obj = Path(rel_path)
    if rel_obj.is_absolute() or ".." in rel_obj.parts:
        return None

    static_dir = _STATIC_DIR.resolve()
    file_path = (static_dir / rel_path).resolve()
    try:
        file_path.relative_to(static_dir)
    except ValueError:
        return None
    try:
        content = file_path.read_bytes()
    except OSError:
        return None

    return (
        base64.urlsafe_b64encode(hashlib.sha256(content).digest())
        .decode("utf-8")
        .rstrip("=")
    )


def static_url(rel_path: str) -> str:
    """Return the `/static` URL of an asset, with a content token when it exists."""
    rel_path = rel_path.lstrip("/")
    url = "/static/" + rel_path
    token = _static_file_token(rel_path)
    if token is None:
        return url
    return f"{url}?{_STATIC_URL_PARAM}={token}"


def default_environment() -> Environment:
    """Return a Jinja2 environment bound to the templates directory."""
    env = Environment(
        loader=FileSystemLoader(str(templates_dir())),
        autoescape=select_autoescape(["html", "xml", "j2"]),
        undefined=StrictUndefined,
    )
    env.globals.update(
        {
            "datetime": datetime,
            "static_url": static_url,
        },
    )
    return env


@cache
def default_templates() -> Jinja2Templates:
    """Return the shared Starlette Jinja2Templates for the site."""
    return Jinja2Templates(env=default_environment())


def render_template(
    request: Request,
    template_name: str,
    context: Mapping[str, object],
    status_code: int = 200,
) -> Response:
    """Render a page; `context` must already carry the request."""
    if context.get("request") is not request:
        raise ValueError(_MISSING_REQUEST_ERROR)
    return default_templates().TemplateResponse(
        request=request,
        name=template_name,
        context=dict(context),
        status_code=status_code,
    )
