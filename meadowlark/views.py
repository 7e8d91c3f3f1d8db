"""UI routes.

Every handler returns a render directive; `respond()` renders it. The
``/fail`` and ``/epic-fail`` routes exist to exercise the fault barrier.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request
from starlette.datastructures import UploadFile
from starlette.responses import Response

from meadowlark.flash import FlashKind, FlashMessage
from meadowlark.fortune import get_fortune
from meadowlark.http.boundary import Redirect, RenderView, respond
from meadowlark.http.cookie_session import load_session
from meadowlark.http.csrf import csrf_matches, csrf_token_from_form
from meadowlark.http.dependencies import get_fault_scope

if TYPE_CHECKING:
    from starlette.datastructures import FormData

logger = logging.getLogger(__name__)

router = APIRouter()

ABOUT_TEST_SCRIPT = "/qa/tests-about.js"
THANK_YOU_URL = "/thank-you"


@router.get("/", name="home")
async def home(request: Request) -> Response:
    return await respond(request, RenderView("home.html.j2"))


@router.get("/about", name="about")
async def about(request: Request) -> Response:
    return await respond(
        request,
        RenderView(
            "about.html.j2",
            {
                "fortune": get_fortune(),
                "page_test_script": ABOUT_TEST_SCRIPT,
            },
        ),
    )


@router.get("/tours/hood-river", name="hood_river")
async def hood_river(request: Request) -> Response:
    return await respond(request, RenderView("tours/hood-river.html.j2"))


@router.get("/tours/request-group-rate", name="request_group_rate")
async def request_group_rate(request: Request) -> Response:
    return await respond(request, RenderView("tours/request-group-rate.html.j2"))


@router.get("/thank-you", name="thank_you")
async def thank_you(request: Request) -> Response:
    return await respond(request, RenderView("thank-you.html.j2"))


@router.get("/newsletter", name="newsletter")
async def newsletter(request: Request) -> Response:
    # The form posts the session's CSRF token from the shared context.
    return await respond(request, RenderView("newsletter.html.j2"))


@router.get("/contest/vacation-photo/", name="vacation_photo")
async def vacation_photo(request: Request) -> Response:
    today = date.today()
    return await respond(
        request,
        RenderView(
            "contest/vacation-photo.html.j2",
            {"year": today.year, "month": today.month},
        ),
    )


@router.get("/fail", name="fail")
def fail() -> Response:
    message = "Nope!"
    raise RuntimeError(message)


@router.get("/epic-fail", name="epic_fail")
async def epic_fail(request: Request) -> Response:
    def kaboom() -> None:
        message = "Kaboom!"
        raise RuntimeError(message)

    fault_scope = get_fault_scope(request)
    fault_scope.defer(kaboom)
    # Cancelled by the barrier when kaboom raises.
    await fault_scope.join()
    return await respond(request, RenderView("home.html.j2"))


def _describe_files(form: FormData) -> list[dict[str, object]]:
    return [
        {
            "field": name,
            "filename": value.filename,
            "content_type": value.content_type,
            "size": value.size,
        }
        for name, value in form.multi_items()
        if isinstance(value, UploadFile)
    ]


def _describe_fields(form: FormData) -> list[tuple[str, str]]:
    return [
        (name, value) for name, value in form.multi_items() if isinstance(value, str)
    ]


@router.post("/contest/vacation-photo/{year}/{month}", name="vacation_photo_entry")
async def vacation_photo_entry(request: Request, year: str, month: str) -> Response:
    async with request.form() as form:
        logger.info("Vacation photo entry for %s/%s", year, month)
        logger.info("received fields: %s", _describe_fields(form))
        logger.info("received files: %s", _describe_files(form))
    return await respond(request, Redirect(THANK_YOU_URL))


@router.post("/process", name="process")
async def process(request: Request) -> Response:
    session = load_session(request)
    form = await request.form()
    csrf_token = csrf_token_from_form(form)

    logger.info("Form (from querystring): %s", request.query_params.get("form"))
    logger.info(
        "CSRF token (from hidden form field): %s (matches session: %s)",
        csrf_token,
        csrf_matches(session, csrf_token),
    )
    logger.info("Name (from visible form field): %s", form.get("name"))
    logger.info("Email (from visible form field): %s", form.get("email"))

    session.set_flash(
        FlashMessage(
            kind=FlashKind.SUCCESS,
            title="Thank you!",
            body="You have successfully submitted data",
        ),
    )
    return await respond(request, Redirect(THANK_YOU_URL))
