"""Signed-cookie session middleware.

A small variant of Starlette's session middleware:
- Uses `itsdangerous.TimestampSigner` for signing.
- Persists a JSON-encoded session dict.
- Browser-session lifetime (no Max-Age), `Secure` when the request was HTTPS.
- Drops the pending flash rather than emitting an oversized cookie.
"""

from __future__ import annotations

import json
import logging
from base64 import b64decode, b64encode
from typing import TYPE_CHECKING, Literal

import itsdangerous
from itsdangerous.exc import BadSignature
from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection

from meadowlark.http.cookie_session import (
    DEFAULT_SAMESITE,
    FLASH_KEY,
    MAX_COOKIE_BYTES,
    SESSION_COOKIE_NAME,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from starlette.types import ASGIApp, Message, Receive, Scope, Send


logger = logging.getLogger(__name__)

_MINIMAL_KEYS = ("csrf_token", "created_at")


class MeadowlarkSessionMiddleware:
    """Load the session from a signed cookie and write it back on response."""

    def __init__(  # noqa: PLR0913
        self,
        app: ASGIApp,
        *,
        secret_key: str | Callable[[], str],
        session_cookie: str = SESSION_COOKIE_NAME,
        path: str = "/",
        same_site: Literal["lax", "strict", "none"] = DEFAULT_SAMESITE,
        https_only: bool = False,
    ) -> None:
        """Initialize the session middleware."""
        self.app = app
        self._secret_key = secret_key
        self._signer: itsdangerous.TimestampSigner | None = None
        self.session_cookie = session_cookie
        self.path = path
        self.same_site = same_site
        self.https_only = https_only

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Load and persist session data for HTTP scopes."""
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        connection = HTTPConnection(scope)
        initial_session_was_empty = True

        session: object = {}
        signer = self._get_signer()
        if self.session_cookie in connection.cookies:
            raw = connection.cookies[self.session_cookie].encode("utf-8")
            try:
                session = json.loads(b64decode(signer.unsign(raw)))
                initial_session_was_empty = False
            except (BadSignature, ValueError, TypeError):
                logger.debug("Ignoring unreadable session cookie")
                session = {}

        if not isinstance(session, dict):
            session = {}

        scope["session"] = session

        async def send_wrapper(message: Message) -> None:
            if message.get("type") == "http.response.start":
                session_data = scope.get("session") or {}
                headers = MutableHeaders(scope=message)
                secure = self.https_only or _is_https_scope(scope)

                if session_data:
                    value = _encode_within_limit(session_data, signer)
                    headers.append(
                        "Set-Cookie",
                        _cookie_header(
                            name=self.session_cookie,
                            value=value,
                            path=self.path,
                            secure=secure,
                            same_site=self.same_site,
                        ),
                    )
                elif not initial_session_was_empty:
                    headers.append(
                        "Set-Cookie",
                        _cookie_header(
                            name=self.session_cookie,
                            value="null",
                            path=self.path,
                            secure=secure,
                            same_site=self.same_site,
                            expired=True,
                        ),
                    )

            await send(message)

        await self.app(scope, receive, send_wrapper)

    def _get_signer(self) -> itsdangerous.TimestampSigner:
        if self._signer is None:
            key = self._secret_key() if callable(self._secret_key) else self._secret_key
            self._signer = itsdangerous.TimestampSigner(str(key))
        return self._signer


def _is_https_scope(scope: Scope) -> bool:
    headers = dict(scope.get("headers") or [])
    forwarded = headers.get(b"x-forwarded-proto", b"").split(b",", 1)[0].strip()
    if forwarded:
        return forwarded == b"https"
    return scope.get("scheme") == "https"


def _cookie_header(  # noqa: PLR0913
    *,
    name: str,
    value: str,
    path: str,
    secure: bool,
    same_site: str,
    expired: bool = False,
) -> str:
    attrs = [f"{name}={value}", f"path={path}"]
    if expired:
        attrs += ["Max-Age=0", "Expires=Thu, 01 Jan 1970 00:00:00 GMT"]
    attrs += ["httponly", f"samesite={same_site}"]
    if secure:
        attrs.append("secure")
    return "; ".join(attrs)


def _encode_cookie_value(
    payload: dict[str, object],
    signer: itsdangerous.TimestampSigner,
) -> str:
    data = b64encode(json.dumps(payload).encode("utf-8"))
    return signer.sign(data).decode("utf-8")


def _encode_within_limit(
    payload: dict[str, object],
    signer: itsdangerous.TimestampSigner,
) -> str:
    value = _encode_cookie_value(payload, signer)
    if len(value.encode("utf-8")) <= MAX_COOKIE_BYTES:
        return value

    if FLASH_KEY in payload:
        logger.warning("Session cookie too large; dropping pending flash")
        trimmed = {k: v for k, v in payload.items() if k != FLASH_KEY}
        value = _encode_cookie_value(trimmed, signer)
        if len(value.encode("utf-8")) <= MAX_COOKIE_BYTES:
            return value

    logger.warning("Session cookie too large; keeping only %s", _MINIMAL_KEYS)
    minimal = {k: payload[k] for k in _MINIMAL_KEYS if k in payload}
    return _encode_cookie_value(minimal, signer)
