"""Startup-time logging setup, selected by run mode.

development: compact coloured console output, app loggers at DEBUG.
production: everything goes to ``<log_dir>/requests.log``, rotated daily.
"""

from __future__ import annotations

import logging.config
from typing import TYPE_CHECKING, Any, Final

from meadowlark.http.settings import RunMode

if TYPE_CHECKING:
    from pathlib import Path

    from meadowlark.http.settings import AppSettings

REQUEST_LOG_NAME: Final[str] = "requests.log"
LOG_BACKUP_DAYS: Final[int] = 14

_APP_LOGGERS: Final[tuple[str, ...]] = ("meadowlark", "uvicorn")


def _development_config() -> dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "dev": {
                "()": "uvicorn.logging.DefaultFormatter",
                "fmt": "%(levelprefix)s %(name)s: %(message)s",
                "use_colors": None,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "dev",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            name: {"handlers": ["console"], "level": "DEBUG", "propagate": False}
            for name in _APP_LOGGERS
        },
    }


def _production_config(log_dir: Path) -> dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "file": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            },
        },
        "handlers": {
            "requests_file": {
                "class": "logging.handlers.TimedRotatingFileHandler",
                "formatter": "file",
                "filename": str(log_dir / REQUEST_LOG_NAME),
                "when": "midnight",
                "backupCount": LOG_BACKUP_DAYS,
                "encoding": "utf-8",
            },
        },
        "loggers": {
            name: {"handlers": ["requests_file"], "level": "INFO", "propagate": False}
            for name in _APP_LOGGERS
        },
    }


def logging_config(settings: AppSettings) -> dict[str, Any]:
    """Return the dictConfig for the settings' run mode."""
    match settings.mode:
        case RunMode.PRODUCTION:
            if settings.log_dir is None:
                message = "production logging requires a log directory"
                raise ValueError(message)
            return _production_config(settings.log_dir)
        case RunMode.DEVELOPMENT:
            return _development_config()


def configure_logging(settings: AppSettings) -> None:
    """Install the logging configuration for this process."""
    if settings.mode is RunMode.PRODUCTION and settings.log_dir is not None:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(logging_config(settings))
