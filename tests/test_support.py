import os
import re
import unittest
from typing import Any

os.environ.setdefault("MEADOWLARK_COOKIE_SECRET", "test-secret")


def require_fastapi() -> tuple[Any, Any]:
    """Return (FastAPI, TestClient) or skip the test module."""
    try:
        from fastapi import FastAPI
        from fastapi.testclient import TestClient

        return FastAPI, TestClient
    except (ModuleNotFoundError, RuntimeError) as exc:  # pragma: no cover
        name = getattr(exc, "name", None)
        raise unittest.SkipTest(
            f"FastAPI test dependencies missing ({name or exc}); skipping HTTP tests",
        )


class RecordingTimer:
    """Stand-in for threading.Timer that never fires on its own."""

    created: list["RecordingTimer"] = []

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        RecordingTimer.created.append(self)

    def start(self):
        self.started = True

    def fire(self):
        self.function()


class ExitRecorder:
    def __init__(self):
        self.codes: list[int] = []

    def __call__(self, code: int) -> None:
        self.codes.append(code)


def make_lifecycle(*, failsafe_delay: float = 5.0):
    from meadowlark.http.lifecycle import ServerLifecycle

    exits = ExitRecorder()
    lifecycle = ServerLifecycle(
        failsafe_delay=failsafe_delay,
        exit_process=exits,
        timer_factory=RecordingTimer,
    )
    return lifecycle, exits


def build_test_app(*, settings=None, weather_provider=None, lifecycle=None):
    """Create the production app with a lifecycle that cannot exit the process."""
    require_fastapi()

    try:
        from meadowlark.app import create_app
        from meadowlark.http.settings import AppSettings
    except ModuleNotFoundError as exc:  # pragma: no cover
        raise unittest.SkipTest(
            f"Server dependencies missing ({exc.name}); skipping HTTP tests",
        )

    if lifecycle is None:
        lifecycle, _exits = make_lifecycle()

    return create_app(
        settings or AppSettings(),
        lifecycle=lifecycle,
        weather_provider=weather_provider,
    )


def make_test_client(**kwargs):
    """Create a starlette TestClient for the site."""
    _FastAPI, TestClient = require_fastapi()
    return TestClient(build_test_app(**kwargs))


_CSRF_META_RE = re.compile(
    r"<meta\s+name=\"csrf-token\"\s+content=\"([^\"]+)\"",
    re.IGNORECASE,
)


def extract_csrf_token(html: str) -> str:
    match = _CSRF_META_RE.search(html)
    if not match:
        raise AssertionError("Could not find csrf-token meta tag")
    return match.group(1)
