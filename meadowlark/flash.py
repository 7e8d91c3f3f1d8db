"""One-shot flash notices carried in the session between two requests."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from enum import StrEnum
from typing import Any, cast

from vtjson import ValidationError, validate

from meadowlark.schemas import flash_schema

logger = logging.getLogger(__name__)


class FlashKind(StrEnum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


@dataclass(frozen=True, slots=True)
class FlashMessage:
    """A notice shown on exactly one page render."""

    kind: FlashKind
    title: str
    body: str

    def to_session(self) -> dict[str, str]:
        data = asdict(self)
        data["kind"] = str(self.kind)
        return data

    @classmethod
    def from_session(cls, data: object) -> FlashMessage | None:
        """Rebuild a flash from session data; malformed payloads yield None."""
        if data is None:
            return None
        try:
            validate(flash_schema, data, name="flash")
        except ValidationError as exc:
            logger.warning("Dropping malformed flash message: %s", exc)
            return None
        fields = cast("dict[str, Any]", data)
        return cls(
            kind=FlashKind(fields["kind"]),
            title=fields["title"],
            body=fields["body"],
        )
