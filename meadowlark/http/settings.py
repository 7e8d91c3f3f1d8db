"""Runtime settings for the Meadowlark server.

This module centralizes environment parsing and derived runtime flags.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

DEFAULT_PORT: int = 3000
DEFAULT_HOST: str = "127.0.0.1"

FAILSAFE_DELAY_SECONDS: float = 5.0
"""Delay before a faulted process is forcibly terminated.

Long enough for in-flight requests to finish once the server stops accepting
connections; short enough that a supervisor restarts a corrupted process
quickly.
"""


class RunMode(StrEnum):
    """Deployment mode, selects logging strategy and test-page gating."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"

    @classmethod
    def parse(cls, value: str | None) -> RunMode:
        """Return the mode named by ``value``; unknown values mean development."""
        raw = (value or "").strip().lower()
        try:
            return cls(raw)
        except ValueError:
            return cls.DEVELOPMENT


def env_int(name: str, *, default: int) -> int:
    """Parse an environment variable as an integer, with a fallback default."""
    value = os.environ.get(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def env_float(name: str, *, default: float) -> float:
    """Parse an environment variable as a non-negative float."""
    value = os.environ.get(name, "").strip()
    if not value:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def package_dir() -> Path:
    return Path(__file__).resolve().parents[1]


def default_static_dir() -> Path:
    """Return the static directory path mounted at `/static` and `/qa`."""
    env_value = os.environ.get("MEADOWLARK_STATIC_DIR", "").strip()
    if env_value:
        return Path(env_value).expanduser()

    # Package-relative resolution works for both source checkouts and wheels.
    return package_dir() / "static"


def default_log_dir() -> Path:
    env_value = os.environ.get("MEADOWLARK_LOG_DIR", "").strip()
    if env_value:
        return Path(env_value).expanduser()
    return Path.cwd() / "log"


@dataclass(frozen=True, slots=True)
class AppSettings:
    """Derived runtime settings for the server process."""

    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    mode: RunMode = RunMode.DEVELOPMENT
    failsafe_delay: float = FAILSAFE_DELAY_SECONDS
    log_dir: Path | None = None

    @property
    def is_production(self) -> bool:
        return self.mode is RunMode.PRODUCTION

    @classmethod
    def from_env(cls) -> AppSettings:
        """Build settings from environment variables."""
        port = env_int("PORT", default=DEFAULT_PORT)
        if not 0 <= port <= 65535:  # noqa: PLR2004
            port = DEFAULT_PORT

        host = os.environ.get("MEADOWLARK_HOST", "").strip() or DEFAULT_HOST

        return cls(
            port=port,
            host=host,
            mode=RunMode.parse(os.environ.get("MEADOWLARK_ENV")),
            failsafe_delay=env_float(
                "MEADOWLARK_FAILSAFE_DELAY",
                default=FAILSAFE_DELAY_SECONDS,
            ),
            log_dir=default_log_dir(),
        )
