"""CSRF helpers for UI forms.

Forms carry the session token in a hidden ``_csrf`` field. Submissions are
not rejected on mismatch; the check result is only logged.
"""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from starlette.datastructures import FormData

    from meadowlark.http.cookie_session import CookieSession

CSRF_FIELD: Final[str] = "_csrf"


def csrf_token_from_form(form: FormData) -> str | None:
    """Extract a CSRF token from a form payload, if present."""
    token = form.get(CSRF_FIELD)
    return token if isinstance(token, str) else None


def csrf_matches(session: CookieSession, form_token: str | None) -> bool:
    """Compare a submitted token with the session token."""
    if not form_token:
        return False
    return secrets.compare_digest(form_token, session.get_csrf_token())
