"""Session helpers for the Meadowlark UI.

`CookieSession` wraps the dict that `MeadowlarkSessionMiddleware` loads into
`request.scope["session"]`; whatever is left in it when the response starts is
signed back into the cookie.
"""

from __future__ import annotations

import logging
import os
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Final, Literal

from meadowlark.flash import FlashMessage
from meadowlark.http.settings import RunMode

if TYPE_CHECKING:
    from starlette.requests import Request

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME: Final[str] = "meadowlark_session"
DEFAULT_SAMESITE: Final[Literal["lax", "strict", "none"]] = "lax"
MAX_COOKIE_BYTES: Final[int] = 3800
COOKIE_SECRET_ENV: Final[str] = "MEADOWLARK_COOKIE_SECRET"
INSECURE_DEV_SECRET: Final[str] = "insecure-dev-secret"
FLASH_KEY: Final[str] = "flash"


class MissingCookieSecretError(RuntimeError):
    """Raised when the cookie secret is missing in production."""

    def __init__(self, env_name: str) -> None:
        """Create a MissingCookieSecretError for the given env var name."""
        message = f"Missing {env_name} (required when running in production)."
        super().__init__(message)


def session_secret_key(mode: RunMode | None = None) -> str:
    """Return the secret used to sign session cookies."""
    value = os.environ.get(COOKIE_SECRET_ENV, "").strip()
    if value:
        return value
    if mode is RunMode.PRODUCTION:
        raise MissingCookieSecretError(COOKIE_SECRET_ENV)
    logger.warning(
        "%s is missing, using an insecure default for session cookies.",
        COOKIE_SECRET_ENV,
    )
    return INSECURE_DEV_SECRET


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class CookieSession:
    """Dict-backed session with CSRF + flash helpers."""

    data: dict[str, Any]

    def get_csrf_token(self) -> str:
        """Return the CSRF token, generating one if needed."""
        token = self.data.get("csrf_token")
        if isinstance(token, str) and token:
            return token
        token = secrets.token_hex(32)
        self.data["csrf_token"] = token
        return token

    def set_flash(self, message: FlashMessage) -> None:
        """Store the flash for the next request, replacing any pending one."""
        self.data[FLASH_KEY] = message.to_session()

    def pop_flash(self) -> FlashMessage | None:
        """Consume and return the pending flash, if any."""
        return FlashMessage.from_session(self.data.pop(FLASH_KEY, None))


def load_session(request: Request) -> CookieSession:
    """Return a `CookieSession` backed by `request.scope["session"]`."""
    scope = request.scope
    session = scope.get("session")
    if not isinstance(session, dict):
        session = {}
        scope["session"] = session
    session.setdefault("created_at", _utc_now_iso())
    return CookieSession(data=session)


__all__ = [
    "COOKIE_SECRET_ENV",
    "DEFAULT_SAMESITE",
    "FLASH_KEY",
    "MAX_COOKIE_BYTES",
    "SESSION_COOKIE_NAME",
    "CookieSession",
    "MissingCookieSecretError",
    "load_session",
    "session_secret_key",
]
